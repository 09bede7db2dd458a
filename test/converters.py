"""
Converters behavioral tests.

Scope
- Primitive conversion: str, int (bases), float, bool, durations, arbitrary callables.
- Process-wide registry: decorator and direct forms, duplicate/contract checks.
- marshal(): kinds (scalar, toggle, list, map), choices, MarshalError wording.
- zero / empty / describe helpers.

Conventions
- Test method names follow CamelCase per project convention.
- Registered types are created inside each test so the registry never sees a type twice.
"""
import unittest
from datetime import timedelta
from pathlib import Path
from unittest import TestCase

from flagtree import Flag, Option, Positional
from flagtree.converters import *
from flagtree.faults import InvalidChoiceError, MarshalError


class TestParseBool(TestCase):
    def testTruthyWords(self):
        for raw in ("1", "t", "true", "yes", "y", "on", "TRUE", "Yes"):
            with self.subTest(raw=raw):
                self.assertIs(parse_bool(raw), True)

    def testFalsyWords(self):
        for raw in ("0", "f", "false", "no", "n", "off", " off "):
            with self.subTest(raw=raw):
                self.assertIs(parse_bool(raw), False)

    def testInvalid(self):
        with self.assertRaises(ValueError):
            parse_bool("maybe")


class TestParseDuration(TestCase):
    def testCompound(self):
        self.assertEqual(parse_duration("1h30m"), timedelta(hours=1, minutes=30))

    def testFractionsAndUnits(self):
        self.assertEqual(parse_duration("250ms"), timedelta(milliseconds=250))
        self.assertEqual(parse_duration("1.5s"), timedelta(seconds=1.5))
        self.assertEqual(parse_duration("2µs"), timedelta(microseconds=2))
        self.assertEqual(parse_duration("2000ns"), timedelta(microseconds=2))

    def testSigns(self):
        self.assertEqual(parse_duration("-1.5h"), -timedelta(hours=1, minutes=30))
        self.assertEqual(parse_duration("+2s"), timedelta(seconds=2))

    def testBareZero(self):
        self.assertEqual(parse_duration("0"), timedelta(0))

    def testMissingUnit(self):
        with self.assertRaises(ValueError):
            parse_duration("15")

    def testGarbage(self):
        for raw in ("", "h", "1x", "1h 30m"):
            with self.subTest(raw=raw):
                with self.assertRaises(ValueError):
                    parse_duration(raw)


class TestConvert(TestCase):
    def testString(self):
        self.assertEqual(convert("text", str), "text")

    def testIntegerBases(self):
        self.assertEqual(convert("42", int), 42)
        self.assertEqual(convert("ff", int, base=16), 255)
        self.assertEqual(convert("0x1f", int, base=0), 31)
        self.assertEqual(convert("-0b101", int, base=0), -5)

    def testFloat(self):
        self.assertEqual(convert("2.5", float), 2.5)

    def testBool(self):
        self.assertIs(convert("on", bool), True)

    def testDuration(self):
        self.assertEqual(convert("3m", timedelta), timedelta(minutes=3))

    def testCallable(self):
        self.assertEqual(convert("/tmp/x", Path), Path("/tmp/x"))

    def testInvalidInteger(self):
        with self.assertRaises(ValueError):
            convert("abc", int)


class TestRegister(TestCase):
    def testDecoratorForm(self):
        class Color:
            def __init__(self, name):
                self.name = name

        @register(Color)
        def color(raw):
            return Color(raw.upper())

        self.assertEqual(convert("red", Color).name, "RED")

    def testDirectForm(self):
        class Celsius(float):
            pass

        def celsius(raw):
            return Celsius(raw.removesuffix("C"))

        self.assertIs(register(Celsius, celsius), celsius)
        self.assertEqual(convert("21.5C", Celsius), 21.5)

    def testDuplicateRegistration(self):
        class Token:
            pass

        register(Token, lambda raw: Token())
        with self.assertRaises(TypeError):
            register(Token, lambda raw: Token())

    def testNonCallableConverter(self):
        class Token:
            pass

        with self.assertRaises(TypeError):
            register(Token, 42)

    def testRegisteredConverterErrorsAreMarshalErrors(self):
        class Port(int):
            pass

        @register(Port)
        def port(raw):
            value = int(raw)
            if not 0 < value < 65536:
                raise ValueError("port out of range")
            return Port(value)

        option = Option("--port", type=Port)
        self.assertEqual(marshal(option, "8080", None), 8080)
        with self.assertRaises(MarshalError) as context:
            marshal(option, "70000", None)
        self.assertIsInstance(context.exception.__cause__, ValueError)


class TestHelpers(TestCase):
    def testDescribe(self):
        self.assertEqual(describe(int), "integer")
        self.assertEqual(describe(float), "number")
        self.assertEqual(describe(timedelta), "duration")
        self.assertEqual(describe(Path), "path")

    def testZero(self):
        self.assertEqual(zero(str), "")
        self.assertEqual(zero(int), 0)
        self.assertIs(zero(bool), False)
        self.assertEqual(zero(timedelta), timedelta(0))
        self.assertIsNone(zero(Path))

    def testEmpty(self):
        self.assertEqual(empty(Kind.LIST, int), [])
        self.assertEqual(empty(Kind.MAP, int), {})
        self.assertIs(empty(Kind.TOGGLE, bool), False)
        self.assertIsNone(empty(Kind.NULLABLE, str))
        self.assertEqual(empty(Kind.SCALAR, float), 0.0)


class TestMarshal(TestCase):
    def testScalar(self):
        self.assertEqual(marshal(Option("--count", type=int), "3", 0), 3)

    def testScalarError(self):
        option = Option("--count", type=int)
        with self.assertRaises(MarshalError) as context:
            marshal(option, "abc", 0, index=2)
        self.assertEqual(
            str(context.exception),
            "invalid value 'abc' for option '--count' at second position (expected integer)",
        )
        self.assertIs(context.exception.options["argument"], option)
        self.assertEqual(context.exception.options["input"], "abc")

    def testToggle(self):
        flag = Flag("-v")
        self.assertIs(marshal(flag, None, False), True)
        self.assertIs(marshal(flag, "false", True), False)
        with self.assertRaises(MarshalError):
            marshal(flag, "maybe", False)

    def testRepeatableToggle(self):
        self.assertEqual(marshal(Flag("-v", repeatable=True), None, [True]), [True, True])

    def testListAppendsToNewContainer(self):
        existing = ["a"]
        self.assertEqual(marshal(Option("--tag", kind="list"), "b", existing), ["a", "b"])
        self.assertEqual(existing, ["a"])

    def testMap(self):
        option = Option("--intmap", kind=Kind.MAP, type=int)
        value = marshal(option, "a:1", {})
        value = marshal(option, "b=2", value)
        self.assertEqual(value, {"a": 1, "b": 2})

    def testMapSplitsOnFirstSeparator(self):
        self.assertEqual(marshal(Option("--env", kind="map"), "url=http://host", {}), {"url": "http://host"})

    def testMapOverwritesKeys(self):
        self.assertEqual(marshal(Option("--m", kind="map", type=int), "a:2", {"a": 1}), {"a": 2})

    def testMapWithoutSeparator(self):
        with self.assertRaises(MarshalError) as context:
            marshal(Option("--intmap", kind="map", type=int), "a", {})
        self.assertEqual(str(context.exception), "invalid value 'a' for option '--intmap' (expected key:value)")

    def testMapKeyType(self):
        self.assertEqual(marshal(Option("--ports", kind="map", keytype=int, type=str), "80:http", {}), {80: "http"})

    def testChoices(self):
        option = Option("--pet", choices=("dog", "cat"))
        self.assertEqual(marshal(option, "dog", ""), "dog")
        with self.assertRaises(InvalidChoiceError) as context:
            marshal(option, "cow", "")
        self.assertEqual(
            str(context.exception),
            "invalid value 'cow' for option '--pet', allowed values are 'dog' or 'cat'",
        )
        self.assertEqual(context.exception.choices, ("dog", "cat"))

    def testChoicesAreCheckedOnRawStrings(self):
        option = Option("--level", type=int, choices=(1, 2, 3))
        self.assertEqual(marshal(option, "2", 0), 2)
        with self.assertRaises(InvalidChoiceError):
            marshal(option, "02", 0)

    def testPositionalLabel(self):
        with self.assertRaises(MarshalError) as context:
            marshal(Positional("count", type=int), "x", 0, index=3)
        self.assertEqual(
            str(context.exception),
            "invalid value 'x' for positional 'count' at third position (expected integer)",
        )


if __name__ == "__main__":
    unittest.main()
