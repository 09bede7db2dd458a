"""
Faults behavioral tests.

Scope
- FaultCode stability and host normalization.
- CommandException / CommandWarning: message, read-only options, code override, replace.
- trigger(): raise vs. print-and-exit, warnings routing, contract checks.
- Rendering with rich (header, message, hint).

Conventions
- Test method names follow CamelCase per project convention.
"""
import copy
import io
import unittest
import warnings
from unittest import TestCase

from rich.console import Console

from flagtree import Parser
from flagtree.faults import *


class TestFaultCode(TestCase):
    def testStableValues(self):
        self.assertEqual(FaultCode.UNKNOWN_FLAG, 11112)
        self.assertEqual(FaultCode.AMBIGUOUS_OPTION, 11113)
        self.assertEqual(FaultCode.REQUIRED, 11131)
        self.assertEqual(FaultCode.HELP, 13101)

    def testNormalizeDefaultsToNumber(self):
        self.assertEqual(FaultCode.MARSHAL.normalize(), "11121")

    def testEveryExceptionHasItsCode(self):
        self.assertEqual(UnknownFlagError.code, FaultCode.UNKNOWN_FLAG)
        self.assertEqual(InvalidChoiceError.code, FaultCode.MARSHAL)
        self.assertEqual(DuplicatedFlagError.code, FaultCode.DUPLICATED_FLAG)
        self.assertEqual(DeprecatedArgumentWarning.code, FaultCode.DEPRECATED_ARGUMENT)


class TestCommandException(TestCase):
    def testMessageAndStr(self):
        error = UnknownFlagError("unknown flag '--x' at first position")
        self.assertEqual(error.message, "unknown flag '--x' at first position")
        self.assertEqual(str(error), "unknown flag '--x' at first position")

    def testEmptyMessage(self):
        self.assertEqual(str(RequiredError()), "")

    def testOptionsAreReadOnly(self):
        error = MarshalError("bad", input="x")
        self.assertEqual(error.options["input"], "x")
        with self.assertRaises(TypeError):
            error.options["input"] = "y"  # type: ignore[index]

    def testCodeOverride(self):
        error = CommandException("custom", code=FaultCode.UNKNOWN_COMMAND)
        self.assertIs(error.code, FaultCode.UNKNOWN_COMMAND)

    def testReplaceMergesOptions(self):
        error = UnknownFlagError("x", hint="first", input="--x")
        replaced = copy.replace(error, hint="second")
        self.assertIsInstance(replaced, UnknownFlagError)
        self.assertEqual(replaced.options["hint"], "second")
        self.assertEqual(replaced.options["input"], "--x")
        self.assertEqual(error.options["hint"], "first")

    def testReplaceRejectsPositionalArguments(self):
        with self.assertRaises(AssertionError):
            UnknownFlagError("x").__replace__("positional")

    def testSchemaErrorsAreValueErrors(self):
        self.assertTrue(issubclass(InvalidSchemaError, ValueError))
        self.assertTrue(issubclass(ShortNameTooLongError, InvalidSchemaError))
        self.assertTrue(issubclass(DuplicatedFlagError, InvalidSchemaError))

    def testChoiceErrorIsMarshalError(self):
        error = InvalidChoiceError("bad", choices=("dog", "cat"))
        self.assertIsInstance(error, MarshalError)
        self.assertEqual(error.choices, ("dog", "cat"))

    def testAmbiguousCandidates(self):
        self.assertEqual(AmbiguousOptionError("x", candidates=["--a", "--b"]).candidates, ("--a", "--b"))

    def testHelpRemaining(self):
        self.assertEqual(HelpError("usage", remaining=("-v", "rest")).remaining, ["-v", "rest"])
        self.assertEqual(HelpError("usage").remaining, [])


class TestTrigger(TestCase):
    def testRaisesOutsideShell(self):
        with self.assertRaises(UnknownFlagError) as context:
            trigger(UnknownFlagError("unknown flag '--x' at first position"), hint="try --help")
        self.assertEqual(context.exception.options["hint"], "try --help")

    def testExitsWithOneInShell(self):
        with self.assertRaises(SystemExit) as context:
            trigger(UnknownFlagError("unknown flag '--x' at first position"), shell=True)
        self.assertEqual(context.exception.code, 1)

    def testHelpExitsWithZeroInShell(self):
        with self.assertRaises(SystemExit) as context:
            trigger(HelpError("Usage:\n  tool\n"), shell=True)
        self.assertEqual(context.exception.code, 0)

    def testWarningsAreWarned(self):
        with self.assertWarns(DeprecatedArgumentWarning) as context:
            trigger(DeprecatedArgumentWarning("option '--old' at first position is deprecated"))
        self.assertEqual(str(context.warning), "option '--old' at first position is deprecated")

    def testWarningsArePrintedInShell(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            trigger(DeprecatedArgumentWarning("deprecated"), shell=True)

    def testRejectsNonFaults(self):
        with self.assertRaises(TypeError):
            trigger(object())

    def testWroteHelp(self):
        self.assertTrue(wrote_help(HelpError("usage")))
        self.assertFalse(wrote_help(UnknownFlagError("x")))
        self.assertFalse(wrote_help(ValueError("x")))


class TestRendering(TestCase):
    def render(self, fault):
        console = Console(file=io.StringIO(), width=120, color_system=None)
        console.print(fault)
        return console.file.getvalue()

    def testHeaderMessageAndHint(self):
        output = self.render(UnknownFlagError(
            "unknown flag '--colr' at second position",
            hint="did you mean '--color'?",
            tool=Parser("tool"),
        ))
        self.assertIn("[ tool - 11112 | Unknown Flag ]", output)
        self.assertIn("unknown flag '--colr' at second position", output)
        self.assertIn("→ did you mean '--color'?", output)

    def testTitleOverride(self):
        output = self.render(RequiredError("missing", title="missing option", tool=Parser("tool")))
        self.assertIn("Missing Option", output)

    def testFancyPanel(self):
        output = self.render(MarshalError("invalid value", fancy=True, tool=Parser("tool")))
        self.assertIn("invalid value", output)
        self.assertIn("Invalid Value", output)

    def testHelpRendersMessageOnly(self):
        output = self.render(HelpError("Usage:\n  tool [OPTIONS]"))
        self.assertEqual(output, "Usage:\n  tool [OPTIONS]\n")


if __name__ == "__main__":
    unittest.main()
