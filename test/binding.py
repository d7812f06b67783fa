r"""
Argument binder behavioral tests (named, short, positional and array binding).

Scope
- Validate the reference scenarios for property-only and command schemas.
- Validate short-name bundles, aliases, the "--" terminator and negative numbers.
- Validate every binding fault kind and the deprecation/empty-value warnings.
- Validate that detokenize() output binds exactly like the original tokens.
- Validate trigger conditions and concurrent binding against one schema.

Conventions
- Test method names follow CamelCase per project convention.
- Raw command text is tokenized with cordage.tokenize before binding.
"""

import threading
import unittest
from concurrent.futures import ThreadPoolExecutor
from unittest import TestCase

from cordage import (
    Property,
    Switch,
    Variadic,
    SchemaRegistry,
    Trigger,
    BindingKind,
    BoundArguments,
    bind,
    command,
    tokenize,
    detokenize,
)
from cordage.faults import BindingError, DeprecatedMemberWarning, EmptyValueWarning


class Settings:
    list = Property("--list", default="")
    cancel = Switch("-c", "--is-cancel")


class Tester:
    message = Property("-m", required=True, explicit=True)

    @command(properties=("message",))
    def test(self, target1, target2=None):
        pass


class Deploy:
    level = Property("-l", "--level", type=int, default=1)
    tag = Property("-t", "--tag")
    verbose = Switch("-v", "--verbose")
    quiet = Switch("-q")
    old = Property("--old", deprecated=True)
    output = Property("-o", "--output", "-out")
    files = Variadic()


class Flags:
    verbose = Switch("-v")
    quiet = Switch("-q")
    both = Switch("--both", "-vq")


class Server:
    port = Property("--port", type=int, default=80, initial=5005)
    name = Property("--name", nullable=True)


class Lock:
    comment = Property("-m", "--comment", triggers={"information": False})
    information = Switch("-i", "--information", triggers={"comment": None})
    format = Property("--format", default="xml", triggers=(Trigger("information", True),))
    path = Property("--path", triggers=(Trigger("format", "xml", inequality=True),))


registry = SchemaRegistry()


def parse(owner, raw, method=None):
    schema = registry.register(owner) if method is None else registry.register(owner, method)
    return bind(schema, tokenize(raw))


class TestScenarios(TestCase):
    """The reference scenarios."""

    def testOptionFollowedByOptionUsesDefault(self):
        self.assertEqual(parse(Settings, "--list -c").byname(), {"list": "", "cancel": True})

    def testOptionValue(self):
        self.assertEqual(parse(Settings, "--list wer -c").byname(), {"list": "wer", "cancel": True})

    def testQuotedOptionValue(self):
        self.assertEqual(parse(Settings, r'--list "a \"b\" c" -c').byname(), {"list": 'a "b" c', "cancel": True})

    def testOmittedSwitchIsFalse(self):
        self.assertEqual(parse(Settings, "").byname(), {"list": "", "cancel": False})

    def testCommandWithExplicitRequiredProperty(self):
        bound = parse(Tester, "a -m wow", "test")
        self.assertEqual(bound.byname(), {"target1": "a", "message": "wow", "target2": None})

    def testMissingExplicitRequiredProperty(self):
        with self.assertRaises(BindingError) as context:
            parse(Tester, "a", "test")
        self.assertIs(context.exception.kind, BindingKind.MISSING_REQUIRED_VALUE)
        self.assertEqual(context.exception.member, "message")

    def testExplicitRequiredCannotBeFilledPositionally(self):
        with self.assertRaises(BindingError) as context:
            parse(Tester, "a b wow", "test")
        self.assertIs(context.exception.kind, BindingKind.MISSING_REQUIRED_VALUE)
        self.assertEqual(context.exception.member, "message")

    def testMissingValueReportedBeforeSurplusPositionals(self):
        with self.assertRaises(BindingError) as context:
            parse(Tester, "a b c d", "test")
        self.assertIs(context.exception.kind, BindingKind.MISSING_REQUIRED_VALUE)

    def testTooManyPositionalArguments(self):
        with self.assertRaises(BindingError) as context:
            parse(Tester, "a b c d -m x", "test")
        self.assertIs(context.exception.kind, BindingKind.TOO_MANY_POSITIONAL_ARGUMENTS)
        self.assertEqual(context.exception.token, "c")
        self.assertEqual(context.exception.options["leftover"], ("c", "d"))

    def testMissingPositionalParameter(self):
        with self.assertRaises(BindingError) as context:
            parse(Tester, "-m x", "test")
        self.assertIs(context.exception.kind, BindingKind.MISSING_REQUIRED_VALUE)
        self.assertEqual(context.exception.member, "target1")


class TestNamedBinding(TestCase):
    """Behavioral tests for long and short spellings."""

    def testLongValueForms(self):
        self.assertEqual(parse(Deploy, "--level 3")["level"], 3)
        self.assertEqual(parse(Deploy, "--level=4")["level"], 4)
        self.assertEqual(parse(Deploy, "--level")["level"], 1)
        self.assertEqual(parse(Deploy, "")["level"], 1)

    def testShortValueForms(self):
        self.assertEqual(parse(Deploy, "-l 3")["level"], 3)
        self.assertEqual(parse(Deploy, "-l5")["level"], 5)
        self.assertEqual(parse(Deploy, "-l=6")["level"], 6)

    def testShortBundle(self):
        bound = parse(Deploy, "-vq")
        self.assertIs(bound["verbose"], True)
        self.assertIs(bound["quiet"], True)

    def testBundleEndingWithValueLetter(self):
        bound = parse(Deploy, "-vl 7")
        self.assertIs(bound["verbose"], True)
        self.assertEqual(bound["level"], 7)

    def testSwitchWithInlineValue(self):
        self.assertIs(parse(Deploy, "--verbose=no")["verbose"], False)
        self.assertIs(parse(Deploy, "-q=yes")["quiet"], True)

    def testAliasSpelling(self):
        self.assertEqual(parse(Deploy, "-out f")["output"], "f")
        self.assertEqual(parse(Deploy, "--output=g")["output"], "g")

    def testQuotedDashValueIsTaken(self):
        self.assertEqual(parse(Deploy, '--tag "-v"')["tag"], "-v")

    def testOmittedOptionalMemberIsLeftOut(self):
        bound = parse(Deploy, "")
        self.assertNotIn("tag", bound)
        self.assertNotIn("output", bound)

    def testInitialValueWinsOnOmission(self):
        self.assertEqual(parse(Server, "")["port"], 5005)
        self.assertEqual(parse(Server, "--port")["port"], 80)
        self.assertEqual(parse(Server, "--port 81")["port"], 81)

    def testNullableMemberBindsNone(self):
        self.assertIsNone(parse(Server, "")["name"])


class TestPositionalBinding(TestCase):
    """Behavioral tests for positional and array binding."""

    def testArrayCollectsPositionals(self):
        self.assertEqual(parse(Deploy, "a b -v c")["files"], ("a", "b", "c"))

    def testAbsentArrayIsEmpty(self):
        self.assertEqual(parse(Deploy, "-v")["files"], ())

    def testTerminatorEndsOptions(self):
        bound = parse(Deploy, "-q -- -v --level x")
        self.assertEqual(bound["files"], ("-v", "--level", "x"))
        self.assertIs(bound["verbose"], False)

    def testNegativeNumberIsPositional(self):
        self.assertEqual(parse(Deploy, "-5")["files"], ("-5",))

    def testQuotedOptionIsPositional(self):
        self.assertEqual(parse(Deploy, '"-v"')["files"], ("-v",))


class TestBindingFaults(TestCase):
    """Behavioral tests for binding faults."""

    def assertFault(self, owner, raw, kind):
        with self.assertRaises(BindingError) as context:
            parse(owner, raw)
        self.assertIs(context.exception.kind, kind)
        self.assertEqual(context.exception.options["code"], kind.code)
        return context.exception

    def testUnknownOption(self):
        fault = self.assertFault(Deploy, "--levle 3", BindingKind.UNKNOWN_OPTION)
        self.assertIsNone(fault.member)
        self.assertIn("--level", fault.suggestions)
        self.assertFault(Deploy, "-x", BindingKind.UNKNOWN_OPTION)

    def testDuplicateAssignment(self):
        fault = self.assertFault(Deploy, "-v --verbose", BindingKind.DUPLICATE_ASSIGNMENT)
        self.assertEqual(fault.member, "verbose")
        self.assertFault(Deploy, "--level 2 -l 3", BindingKind.DUPLICATE_ASSIGNMENT)

    def testTypeConversionFailed(self):
        fault = self.assertFault(Deploy, "--level=x", BindingKind.TYPE_CONVERSION_FAILED)
        self.assertEqual(fault.member, "level")
        self.assertIsInstance(fault.__cause__, ValueError)

    def testSwitchConversionFailed(self):
        self.assertFault(Deploy, "--verbose=ewe", BindingKind.TYPE_CONVERSION_FAILED)

    def testMissingOptionValue(self):
        fault = self.assertFault(Deploy, "--tag", BindingKind.MISSING_REQUIRED_VALUE)
        self.assertEqual(fault.member, "tag")
        self.assertFault(Deploy, "--tag -v", BindingKind.MISSING_REQUIRED_VALUE)

    def testValueOrBundleIsAmbiguous(self):
        fault = self.assertFault(Deploy, "-lv", BindingKind.AMBIGUOUS_SHORT_NAME)
        self.assertEqual(fault.member, "level")

    def testAliasOrBundleIsAmbiguous(self):
        fault = self.assertFault(Flags, "-vq", BindingKind.AMBIGUOUS_SHORT_NAME)
        self.assertEqual(fault.member, "both")
        self.assertIs(parse(Flags, "--both")["both"], True)

    def testArgumentsValidated(self):
        schema = registry.register(Deploy)
        with self.assertRaises(TypeError):
            bind(schema, "-v")
        with self.assertRaises(TypeError):
            bind(Deploy, [])
        with self.assertRaises(TypeError):
            bind(schema, [1])


class TestBindingWarnings(TestCase):
    """Behavioral tests for warnings emitted while binding."""

    def testEmptyInlineValueWarns(self):
        with self.assertWarns(EmptyValueWarning):
            bound = parse(Deploy, "--tag=")
        self.assertEqual(bound["tag"], "")

    def testDeprecatedMemberWarns(self):
        with self.assertWarns(DeprecatedMemberWarning):
            bound = parse(Deploy, "--old x")
        self.assertEqual(bound["old"], "x")


class TestBoundArguments(TestCase):
    """Behavioral tests for the BoundArguments mapping."""

    def testMappingFollowsSchemaOrder(self):
        schema = registry.register(Deploy)
        bound = bind(schema, tokenize("b -t x -v"))
        self.assertIsInstance(bound, BoundArguments)
        self.assertIs(bound.schema, schema)
        self.assertEqual(list(bound), [member for member in schema.members if member in bound])
        self.assertEqual(bound[schema.member("tag")], "x")
        self.assertIn(schema.member("verbose"), bound)
        self.assertNotIn("output", bound)
        with self.assertRaises(KeyError):
            bound["nothing"]

    def testDetokenizedInputBindsTheSame(self):
        schema = registry.register(Deploy)
        for raw in (r'-v --tag "a \"b\" c" x y', r"-l 3 'q r' \-z", '-- -v ""'):
            tokens = tokenize(raw)
            self.assertEqual(bind(schema, tokenize(detokenize(tokens))), bind(schema, tokens))


class TestTriggers(TestCase):
    """Behavioral tests for trigger conditions between properties."""

    def assertViolation(self, raw, member):
        with self.assertRaises(BindingError) as context:
            parse(Lock, raw)
        self.assertIs(context.exception.kind, BindingKind.TRIGGER_CONDITION_FAILED)
        self.assertEqual(context.exception.member, member)
        return context.exception

    def testSatisfiedConditionsBind(self):
        self.assertEqual(parse(Lock, "-m hi")["comment"], "hi")
        self.assertIs(parse(Lock, "-i")["information"], True)
        bound = parse(Lock, "--format json -i")
        self.assertEqual(bound["format"], "json")
        self.assertEqual(parse(Lock, "--path p --format json -i")["path"], "p")

    def testOmittedMembersAreNotChecked(self):
        bound = parse(Lock, "")
        self.assertEqual(bound["format"], "xml")
        self.assertIs(bound["information"], False)

    def testEqualityViolated(self):
        fault = self.assertViolation("-m hi -i", "comment")
        self.assertEqual(str(fault), "--comment cannot be used unless --information is False")
        self.assertEqual(fault.options["target"], "information")
        self.assertEqual(fault.options["code"], BindingKind.TRIGGER_CONDITION_FAILED.code)
        self.assertViolation("-i -m hi", "information")
        self.assertViolation("--format json", "format")

    def testInequalityViolatedByDefaultValue(self):
        fault = self.assertViolation("--path p", "path")
        self.assertEqual(str(fault), "--path cannot be used while --format is 'xml'")
        self.assertViolation("--path p --format xml -i", "path")

    def testMissingRequiredValueReportedFirst(self):
        class Guarded:
            name = Property("-n", required=True, explicit=True)
            force = Switch("-f", triggers={"name": "x"})

        with self.assertRaises(BindingError) as context:
            parse(Guarded, "-f")
        self.assertIs(context.exception.kind, BindingKind.MISSING_REQUIRED_VALUE)


class TestConcurrentBinding(TestCase):
    """Behavioral tests for one schema bound from many threads at once."""

    def testEveryThreadGetsItsOwnValues(self):
        schema = registry.register(Deploy)
        barrier = threading.Barrier(8)

        def worker(number):
            barrier.wait()
            bound = bind(schema, tokenize(f"-l {number} -t tag{number} file{number}"))
            return number, bound

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(worker, range(64)))
        for number, bound in results:
            self.assertEqual(bound["level"], number)
            self.assertEqual(bound["tag"], f"tag{number}")
            self.assertEqual(bound["files"], (f"file{number}",))


if __name__ == "__main__":
    unittest.main()
