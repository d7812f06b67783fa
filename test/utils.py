"""
Utility helpers behavioral tests.

Scope
- Validate the Unset sentinel and coalesce().
- Validate spinal-case name derivation and ordinal labels.
- Validate IntrospectableType mirrors, reprs and sealing.

Conventions
- Test method names follow CamelCase per project convention.
"""

import copy
import pickle
import unittest
from unittest import TestCase

from cordage.utils import (
    UnsetType,
    Unset,
    coalesce,
    rename,
    spinalize,
    ordinal,
    IntrospectableType,
)


class Sample(metaclass=IntrospectableType, sealed=True):
    __introspectable__ = ("items", "table", "label")

    def __init__(self):
        self._items = ["a", "b"]
        self._table = {"k": 1}
        self._label = "x"


class TestUnset(TestCase):
    """Behavioral tests for the Unset sentinel."""

    def testSingletonAndFalsy(self):
        self.assertIs(UnsetType(), Unset)
        self.assertFalse(Unset)
        self.assertEqual(repr(Unset), "Unset")

    def testCopiesKeepIdentity(self):
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(pickle.loads(pickle.dumps(Unset)), Unset)

    def testUnionWithTypes(self):
        self.assertIsInstance(Unset, str | Unset)
        self.assertIsInstance("x", Unset | str)

    def testCannotBeSubclassed(self):
        with self.assertRaises(TypeError):
            class Derived(UnsetType):
                pass

    def testCoalesce(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))
        self.assertEqual(coalesce(0, 5), 0)
        self.assertIsNone(coalesce(None, 5))


class TestNames(TestCase):
    """Behavioral tests for spinalize() and ordinal()."""

    def testSpinalize(self):
        self.assertEqual(spinalize("push_many"), "push-many")
        self.assertEqual(spinalize("PushMany"), "push-many")
        self.assertEqual(spinalize("HTTPServer"), "http-server")
        self.assertEqual(spinalize("_private_"), "private")
        self.assertEqual(spinalize("target1"), "target1")

    def testAsyncSuffixDropped(self):
        self.assertEqual(spinalize("fetch_async"), "fetch")
        self.assertEqual(spinalize("fetchAsync"), "fetch")
        self.assertEqual(spinalize("async"), "async")

    def testSpinalizeErrors(self):
        with self.assertRaises(ValueError):
            spinalize("__")
        with self.assertRaises(TypeError):
            spinalize(5)

    def testOrdinal(self):
        self.assertEqual(ordinal(1), "first")
        self.assertEqual(ordinal(10), "tenth")
        self.assertEqual(ordinal(11), "11th")
        self.assertEqual(ordinal(13), "13th")
        self.assertEqual(ordinal(21), "21st")
        self.assertEqual(ordinal(22), "22nd")
        self.assertEqual(ordinal(103), "103rd")
        self.assertEqual(ordinal(112), "112th")

    def testRename(self):
        @rename("renamed")
        def original():
            pass

        self.assertEqual(original.__name__, "renamed")
        with self.assertRaises(TypeError):
            rename(5, "x")


class TestIntrospectableType(TestCase):
    """Behavioral tests for the metaclass."""

    def testMirrorsAreReadOnlyViews(self):
        sample = Sample()
        self.assertEqual(sample.items, ("a", "b"))
        self.assertEqual(dict(sample.table), {"k": 1})
        with self.assertRaises(TypeError):
            sample.table["k"] = 2
        with self.assertRaises(AttributeError):
            sample.label = "y"

    def testTypenameAndRepr(self):
        self.assertEqual(Sample.__typename__, "sample")
        self.assertEqual(repr(Sample()), "sample(items=('a', 'b'), table=mappingproxy({'k': 1}), label='x')")

    def testSealed(self):
        with self.assertRaises(TypeError):
            class Derived(Sample):
                pass


if __name__ == "__main__":
    unittest.main()
