"""
Utilities behavioral tests.

Scope
- Unset marker semantics (falsey, singleton, sealed, copy-stable, usable in unions).
- coalesce / rename / mirror helpers.
- ordinal wording used by fault messages.

Conventions
- Test method names follow CamelCase per project convention.
"""
import copy
import pickle
import unittest
from unittest import TestCase

from flagtree.utils import Unset, UnsetType, coalesce, mirror, ordinal, rename


class TestUnset(TestCase):
    def testUnsetIsFalsey(self):
        self.assertFalse(Unset)

    def testUnsetRepr(self):
        self.assertEqual(repr(Unset), "Unset")

    def testUnsetIsSingleton(self):
        self.assertIs(UnsetType(), Unset)

    def testUnsetSurvivesCopies(self):
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy([Unset])[0], Unset)
        self.assertIs(pickle.loads(pickle.dumps(Unset)), Unset)

    def testUnsetCannotBeSubclassed(self):
        with self.assertRaises(TypeError):
            type("Derived", (UnsetType,), {})

    def testUnsetInUnionTypes(self):
        self.assertIsInstance(Unset, str | Unset)
        self.assertIsInstance(Unset, str | bytes | Unset)
        self.assertNotIsInstance("text", int | Unset)


class TestCoalesce(TestCase):
    def testCoalesceReplacesUnset(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")

    def testCoalesceKeepsFalseyValues(self):
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 1), 0)
        self.assertEqual(coalesce("", "x"), "")

    def testCoalesceDefaultsToNone(self):
        self.assertIsNone(coalesce(Unset))
        self.assertIsNone(coalesce())

    def testCoalesceTakesFirstProvided(self):
        self.assertEqual(coalesce(Unset, Unset, "third", "fourth"), "third")


class TestRename(TestCase):
    def testRenameDecorator(self):
        @rename("decorated")
        def function():
            pass

        self.assertEqual(function.__name__, "decorated")
        self.assertEqual(function.__qualname__, "decorated")

    def testRenameRejectsNonStringName(self):
        with self.assertRaises(TypeError):
            rename(42)


class TestMirror(TestCase):
    def testMirrorCopiesContainers(self):
        class Holder:
            items = mirror("items")

            def __init__(self):
                self._items = ["a", {"k": ["v"]}]

        holder = Holder()
        items = holder.items
        items.append("b")
        items[1]["k"].append("w")
        self.assertEqual(holder.items, ["a", {"k": ["v"]}])

    def testMirrorTurnsTuplesIntoLists(self):
        class Holder:
            names = mirror("names")

            def __init__(self):
                self._names = ("-v", "--verbose")

        self.assertEqual(Holder().names, ["-v", "--verbose"])

    def testMirrorKeepsStrings(self):
        class Holder:
            name = mirror("name")

            def __init__(self):
                self._name = "value"

        self.assertEqual(Holder().name, "value")

    def testMirrorIsReadOnly(self):
        class Holder:
            name = mirror("name")

            def __init__(self):
                self._name = "x"

        with self.assertRaises(AttributeError):
            Holder().name = "y"

    def testMirrorRejectsNonString(self):
        with self.assertRaises(TypeError):
            mirror(1)


class TestOrdinal(TestCase):
    def testWordsUpToTen(self):
        self.assertEqual(ordinal(1), "first")
        self.assertEqual(ordinal(3), "third")
        self.assertEqual(ordinal(10), "tenth")

    def testTeens(self):
        self.assertEqual(ordinal(11), "11th")
        self.assertEqual(ordinal(12), "12th")
        self.assertEqual(ordinal(113), "113th")

    def testSuffixes(self):
        self.assertEqual(ordinal(21), "21st")
        self.assertEqual(ordinal(22), "22nd")
        self.assertEqual(ordinal(23), "23rd")
        self.assertEqual(ordinal(102), "102nd")


if __name__ == "__main__":
    unittest.main()
