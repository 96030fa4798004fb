import io
import contextlib
import unittest
from Nodes_AST import *
from Error import ErrorHandler, ErrorType
from SemanticAnalyzer import SemanticAnalyzer
from SymbolTable import SymbolTable
from CodeGenerator import CodeGenerator

def decl(lang_type, *names):
    return VariableDecl(lang_type, list(names))

def assign(name, expr):
    return ExpressionStatement(Assignment(Location(name), expr))

def var(name):
    return Location(name)

def generate(*statements):
    error_handler = ErrorHandler()
    analyzer = SemanticAnalyzer(error_handler)
    program = Program(list(statements))
    analyzer.analyze(program)
    assert not error_handler.has_errors(), error_handler.get_formatted_errors()
    instructions = CodeGenerator(error_handler, analyzer.symbol_table).generate(program)
    assert instructions is not None, error_handler.get_formatted_errors()
    return [str(i) for i in instructions]

class TestCodeGenerator(unittest.TestCase):
    def test_int_declaration_and_assignment(self):
        instr = generate(decl('int', 'a'), assign('a', Integer(42)))
        self.assertEqual(instr, ["push i 0", "save i a", "push i 42", "save i a", "load a", "pop"])

    def test_declaration_defaults(self):
        instr = generate(decl('int', 'i'), decl('float', 'f'), decl('bool', 'b'), decl('string', 's'))
        self.assertEqual(instr, [
            "push i 0", "save i i",
            "push f 0.0", "save f f",
            "push b false", "save b b",
            'push s ""', "save s s",
        ])

    def test_float_promotion_assignment(self):
        instr = generate(decl('float', 'c'), assign('c', Integer(10)))
        self.assertEqual(instr, ["push f 0.0", "save f c", "push i 10", "itof", "save f c", "load c", "pop"])
        self.assertEqual(instr.count("itof"), 1)

    def test_string_and_bool_literals(self):
        instr = generate(decl('string', 'msg'), assign('msg', String("hello")),
                         decl('bool', 'm'), assign('m', Boolean(True)))
        self.assertIn('push s "hello"', instr)
        self.assertIn("save s msg", instr)
        self.assertIn("push b true", instr)
        self.assertIn("save b m", instr)

    def test_add_int(self):
        instr = generate(decl('int', 'a'), decl('int', 'b'), decl('int', 'result'),
                         assign('a', Integer(2)), assign('b', Integer(3)),
                         assign('result', BinOp('+', var('a'), var('b'))))
        self.assertEqual(instr, [
            "push i 0", "save i a",
            "push i 0", "save i b",
            "push i 0", "save i result",
            "push i 2", "save i a", "load a", "pop",
            "push i 3", "save i b", "load b", "pop",
            "load a", "load b", "add i", "save i result", "load result", "pop",
        ])

    def test_sub_float_with_promotion(self):
        instr = generate(decl('int', 'a'), decl('float', 'b'), decl('float', 'result'),
                         assign('result', BinOp('-', var('a'), var('b'))))
        self.assertEqual(instr[6:], ["load a", "itof", "load b", "sub f", "save f result", "load result", "pop"])

    def test_promotion_of_right_operand(self):
        instr = generate(decl('float', 'a'), decl('float', 'r'),
                         assign('r', BinOp('*', var('a'), Integer(2))))
        self.assertEqual(instr[4:9], ["load a", "push i 2", "itof", "mul f", "save f r"])

    def test_nested_promotion(self):
        # (1 + 2) * 1.5: the int sum is converted once, after its own add
        expr = BinOp('*', BinOp('+', Integer(1), Integer(2)), Float(1.5))
        instr = generate(Write([expr]))
        self.assertEqual(instr, ["push i 1", "push i 2", "add i", "itof", "push f 1.5", "mul f", "print 1"])

    def test_concat_and_modulo(self):
        instr = generate(decl('string', 's'), assign('s', BinOp('.', String("A"), String("B"))),
                         decl('int', 'm'), assign('m', BinOp('%', Integer(7), Integer(3))))
        self.assertIn("concat", instr)
        self.assertIn("mod", instr)
        self.assertEqual(instr[instr.index("concat") - 2:instr.index("concat") + 2],
                         ['push s "A"', 'push s "B"', "concat", "save s s"])

    def test_equality(self):
        instr = generate(decl('int', 'a'), decl('float', 'b'), decl('bool', 'r'),
                         assign('r', CompareOp('==', var('a'), var('b'))))
        self.assertEqual(instr[6:10], ["load a", "itof", "load b", "eq f"])

        instr = generate(decl('string', 'a'), decl('bool', 'r'),
                         assign('r', CompareOp('==', var('a'), String("x"))))
        self.assertIn("eq s", instr)

        instr = generate(Write([CompareOp('==', Boolean(True), Boolean(False))]))
        self.assertEqual(instr, ["push b true", "push b false", "eq b", "print 1"])

    def test_not_equal_is_eq_then_not(self):
        instr = generate(Write([CompareOp('!=', Integer(1), Integer(2))]))
        self.assertEqual(instr, ["push i 1", "push i 2", "eq i", "not", "print 1"])

    def test_relational(self):
        instr = generate(Write([CompareOp('<', Integer(1), Integer(2)),
                                CompareOp('>', Integer(4), Float(2.5))]))
        self.assertEqual(instr, ["push i 1", "push i 2", "lt i",
                                 "push i 4", "itof", "push f 2.5", "gt f",
                                 "print 2"])

    def test_logical_without_short_circuit(self):
        instr = generate(decl('bool', 'a'), decl('bool', 'b'),
                         Write([LogicalOp('&&', var('a'), var('b')),
                                LogicalOp('||', var('a'), UnaryOp('!', var('b')))]))
        self.assertEqual(instr[4:], ["load a", "load b", "and",
                                     "load a", "load b", "not", "or",
                                     "print 2"])
        self.assertNotIn("fjmp", " ".join(instr))

    def test_unary_minus(self):
        instr = generate(Write([UnaryOp('-', Integer(3)), UnaryOp('-', Float(1.5))]))
        self.assertEqual(instr, ["push i 3", "uminus i", "push f 1.5", "uminus f", "print 2"])

    def test_write_statement(self):
        instr = generate(decl('int', 'a'), decl('float', 'b'), decl('bool', 'c'), decl('string', 'd'),
                         Write([var('a'), var('b'), var('c'), var('d')]))
        self.assertEqual(instr[8:], ["load a", "load b", "load c", "load d", "print 4"])

    def test_read_statement(self):
        instr = generate(decl('int', 'a'), decl('float', 'b'), decl('bool', 'c'), decl('string', 'd'),
                         Read(['a', 'b', 'c', 'd']))
        self.assertEqual(instr[8:], [
            "read i", "save i a",
            "read f", "save f b",
            "read b", "save b c",
            "read s", "save s d",
        ])

    def test_if_statement(self):
        instr = generate(decl('bool', 'cond'), decl('int', 'a'),
                         If(var('cond'), [assign('a', Integer(42))]))
        self.assertEqual(instr[4:], [
            "load cond", "fjmp L0",
            "push i 42", "save i a", "load a", "pop",
            "jmp L1",
            "label L0",
            "label L1",
        ])

    def test_if_else_statement(self):
        instr = generate(decl('int', 'a'),
                         If(CompareOp('>', var('a'), Integer(0)),
                            [Write([String("pos")])],
                            [Write([String("neg")])]))
        self.assertEqual(instr[2:], [
            "load a", "push i 0", "gt i", "fjmp L0",
            'push s "pos"', "print 1",
            "jmp L1",
            "label L0",
            'push s "neg"', "print 1",
            "label L1",
        ])

    def test_while_statement(self):
        instr = generate(decl('int', 'a'), assign('a', Integer(0)),
                         While(CompareOp('<', var('a'), Integer(3)),
                               [assign('a', BinOp('+', var('a'), Integer(1)))]))
        self.assertEqual(instr, [
            "push i 0", "save i a",
            "push i 0", "save i a", "load a", "pop",
            "label L0",
            "load a", "push i 3", "lt i", "fjmp L1",
            "load a", "push i 1", "add i", "save i a", "load a", "pop",
            "jmp L0",
            "label L1",
        ])

    def test_for_statement(self):
        instr = generate(decl('int', 'a'), assign('a', Integer(0)),
                         For(Assignment(var('a'), Integer(0)),
                             CompareOp('<', var('a'), Integer(3)),
                             Assignment(var('a'), BinOp('+', var('a'), Integer(1))),
                             [Write([var('a')])]))
        self.assertEqual(instr, [
            "push i 0", "save i a",
            "push i 0", "save i a", "load a", "pop",
            "push i 0", "save i a",
            "label L0",
            "load a", "push i 3", "lt i", "fjmp L1",
            "load a", "print 1",
            "load a", "push i 1", "add i", "save i a",
            "jmp L0",
            "label L1",
        ])

    def test_nested_loops_get_unique_labels(self):
        inner = While(Boolean(False), [])
        instr = generate(While(Boolean(True), [inner, If(Boolean(True), [])]))
        labels = [i for i in instr if i.startswith("label")]
        self.assertEqual(labels, ["label L0", "label L2", "label L3", "label L4", "label L5", "label L1"])

    def test_chain_assignment(self):
        instr = generate(decl('int', 'i', 'j', 'k'),
                         ExpressionStatement(Assignment(var('i'), Assignment(var('j'), Assignment(var('k'), Integer(55))))))
        self.assertEqual(instr, [
            "push i 0", "save i i",
            "push i 0", "save i j",
            "push i 0", "save i k",
            "push i 55", "save i k",
            "load k", "save i j",
            "load j", "save i i", "load i", "pop",
        ])

    def test_chain_assignment_with_widening(self):
        instr = generate(decl('float', 'f'), decl('int', 'k'),
                         ExpressionStatement(Assignment(var('f'), Assignment(var('k'), Integer(1)))))
        self.assertEqual(instr[4:], ["push i 1", "save i k", "load k", "itof", "save f f", "load f", "pop"])

    def test_expression_statement_is_popped(self):
        instr = generate(ExpressionStatement(BinOp('+', Integer(1), Integer(2))), EmptyStatement())
        self.assertEqual(instr, ["push i 1", "push i 2", "add i", "pop"])

    def test_labels_restart_for_each_generation(self):
        error_handler = ErrorHandler()
        analyzer = SemanticAnalyzer(error_handler)
        program = Program([While(Boolean(False), [])])
        analyzer.analyze(program)
        generator = CodeGenerator(error_handler, analyzer.symbol_table)
        first = generator.generate(program)
        second = generator.generate(program)
        self.assertEqual(first, second)
        self.assertEqual(str(first[0]), "label L0")

    def test_text_output(self):
        error_handler = ErrorHandler()
        analyzer = SemanticAnalyzer(error_handler)
        program = Program([Write([Integer(1), String("x y")])])
        analyzer.analyze(program)
        generator = CodeGenerator(error_handler, analyzer.symbol_table)
        generator.generate(program)
        self.assertEqual(generator.to_text(), 'push i 1\npush s "x y"\nprint 2\n')

    def test_label_prefix(self):
        error_handler = ErrorHandler()
        analyzer = SemanticAnalyzer(error_handler)
        program = Program([If(Boolean(True), []), While(Boolean(False), [])])
        analyzer.analyze(program)
        generator = CodeGenerator(error_handler, analyzer.symbol_table, label_prefix="loop_")
        instr = [str(i) for i in generator.generate(program)]
        self.assertEqual([i for i in instr if i.split()[0] in ("label", "jmp", "fjmp")], [
            "fjmp loop_0", "jmp loop_1", "label loop_0", "label loop_1",
            "label loop_2", "fjmp loop_3", "jmp loop_2", "label loop_3",
        ])

    def test_print_ir_to_console(self):
        error_handler = ErrorHandler()
        analyzer = SemanticAnalyzer(error_handler)
        program = Program([decl('int', 'a'), Write([var('a')])])
        analyzer.analyze(program)
        generator = CodeGenerator(error_handler, analyzer.symbol_table)

        quiet = io.StringIO()
        with contextlib.redirect_stdout(quiet):
            generator.generate(program)
        self.assertEqual(quiet.getvalue(), "")

        generator.print_ir_to_console = True
        echoed = io.StringIO()
        with contextlib.redirect_stdout(echoed):
            generator.generate(program)
        self.assertEqual(echoed.getvalue().splitlines(),
                         ["  IR: push i 0", "  IR: save i a", "  IR: load a", "  IR: print 1"])


class TestCodeGeneratorFaults(unittest.TestCase):
    """Faults that a type checker would normally stop; the generator aborts on its own."""
    def generate_unchecked(self, symbols, *statements):
        error_handler = ErrorHandler()
        symbol_table = SymbolTable()
        for name, lang_type in symbols.items():
            symbol_table.declare(name, lang_type)
        generator = CodeGenerator(error_handler, symbol_table)
        return generator, generator.generate(Program(list(statements))), error_handler

    def assertAborted(self, symbols, *statements):
        generator, result, error_handler = self.generate_unchecked(symbols, *statements)
        self.assertIsNone(result)
        self.assertEqual(generator.instructions, [])
        self.assertEqual(error_handler.get_error_count(), 1)
        self.assertEqual(error_handler.get_entries()[0].type, ErrorType.GENERATION)
        return error_handler.get_entries()[0].message

    def test_undeclared_variable(self):
        message = self.assertAborted({}, Write([Integer(1)]), Write([var('zz')]))
        self.assertIn("not declared", message)

    def test_incompatible_assignment(self):
        self.assertAborted({'a': 'int'}, decl('int', 'a'), assign('a', String("s")))

    def test_narrowing_is_rejected(self):
        self.assertAborted({'a': 'int'}, decl('int', 'a'), assign('a', Float(1.0)))

    def test_unknown_declared_type(self):
        message = self.assertAborted({'f': 'file'}, decl('file', 'f'))
        self.assertIn("Unknown type", message)

    def test_redeclaration(self):
        self.assertAborted({'a': 'int'}, decl('int', 'a'), decl('int', 'a'))

    def test_operator_without_lowering(self):
        self.assertAborted({}, Write([BinOp('+', String("a"), String("b"))]))
        self.assertAborted({}, Write([BinOp('%', Float(1.0), Integer(2))]))
        self.assertAborted({}, Write([CompareOp('<', Boolean(True), Boolean(False))]))

    def test_non_bool_condition(self):
        self.assertAborted({}, While(Integer(1), []))

    def test_use_before_declaration(self):
        message = self.assertAborted({'a': 'int'}, Write([var('a')]), decl('int', 'a'))
        self.assertIn("before its declaration", message)
        self.assertAborted({'a': 'int'}, assign('a', Integer(1)), decl('int', 'a'))
        self.assertAborted({'a': 'int'}, Read(['a']), decl('int', 'a'))

    def test_generates_without_annotations(self):
        # Types come from the symbol table when the analyzer has not run
        _, result, error_handler = self.generate_unchecked(
            {'a': 'int', 'f': 'float'}, decl('int', 'a'), decl('float', 'f'),
            assign('f', BinOp('+', var('a'), var('f'))))
        self.assertFalse(error_handler.has_errors())
        self.assertEqual([str(i) for i in result[4:]], ["load a", "itof", "load f", "add f", "save f f", "load f", "pop"])

if __name__ == '__main__':
    unittest.main()
