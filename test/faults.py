"""
Faults behavioral tests (codes, trigger, rendering).

Scope
- Validate fault codes, binding kinds and required fault options.
- Validate trigger() raising, replacing and rendering in shell mode.
- Validate warnings going through the warnings machinery outside shell mode.

Conventions
- Test method names follow CamelCase per project convention.
- Rich output is rendered into a StringIO-backed Console.
"""

import contextlib
import copy
import io
import unittest
from unittest import TestCase

from rich.console import Console

from cordage.faults import (
    FaultCode,
    BindingKind,
    CommandException,
    SchemaError,
    CommandSyntaxError,
    BindingError,
    PreconditionFailed,
    HandlerInvocationError,
    EmptyValueWarning,
    DeprecatedMemberWarning,
    trigger,
    getdoc,
)


def render(fault):
    buffer = io.StringIO()
    Console(file=buffer, width=120).print(fault)
    return buffer.getvalue()


class TestFaultCodes(TestCase):
    """Behavioral tests for FaultCode and BindingKind."""

    def testEveryBindingKindHasACode(self):
        for kind in BindingKind:
            self.assertIs(kind.code, FaultCode[kind.name])
            self.assertEqual(kind.title, kind.value)

    def testNormalizeDefaultsToNumber(self):
        self.assertEqual(FaultCode.UNKNOWN_COMMAND.normalize(), "11101")

    def testDefaultCodes(self):
        self.assertIs(SchemaError("x").options["code"], FaultCode.SCHEMA_CONFLICT)
        self.assertIs(CommandSyntaxError("x").options["code"], FaultCode.UNTERMINATED_QUOTE)
        self.assertIs(PreconditionFailed("x").options["code"], FaultCode.PRECONDITION_FAILED)
        self.assertIs(EmptyValueWarning("x").options["code"], FaultCode.EMPTY_INLINE_VALUE)
        self.assertIs(DeprecatedMemberWarning("x").options["code"], FaultCode.DEPRECATED_MEMBER)

    def testBindingErrorRequiresKind(self):
        with self.assertRaises(TypeError):
            BindingError("x")
        fault = BindingError("x", kind=BindingKind.UNKNOWN_OPTION, token="--y")
        self.assertIs(fault.options["code"], FaultCode.UNKNOWN_OPTION)
        self.assertIsNone(fault.member)
        self.assertEqual(fault.token, "--y")
        self.assertEqual(fault.suggestions, ())

    def testHandlerInvocationErrorRequiresCause(self):
        with self.assertRaises(TypeError):
            HandlerInvocationError("x")
        cause = KeyError("k")
        self.assertIs(HandlerInvocationError("x", cause=cause).cause, cause)

    def testGetdoc(self):
        self.assertIsNone(getdoc(FaultCode.HANDLER_FAILURE))
        with self.assertRaises(TypeError):
            getdoc(11132)


class TestTrigger(TestCase):
    """Behavioral tests for trigger()."""

    def testRaisesOutsideShellMode(self):
        with self.assertRaises(SchemaError) as context:
            trigger(SchemaError("bad declarations"), hint="fix them")
        self.assertEqual(str(context.exception), "bad declarations")
        self.assertEqual(context.exception.options["hint"], "fix them")

    def testReplaceKeepsCause(self):
        fault = PreconditionFailed("nope")
        fault.__cause__ = ValueError("why")
        replica = copy.replace(fault, hint="retry")
        self.assertIsInstance(replica, PreconditionFailed)
        self.assertIs(replica.__cause__, fault.__cause__)
        self.assertEqual(replica.options["hint"], "retry")
        self.assertNotIn("hint", fault.options)

    def testDeferredShellModeRendersAndReturns(self):
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            trigger(SchemaError("bad declarations"), shell=True, deferred=True, prog="tool")
        self.assertIn("bad declarations", stderr.getvalue())

    def testShellModeExits(self):
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as context:
                trigger(SchemaError("bad declarations"), shell=True)
        self.assertEqual(context.exception.code, 1)

    def testWarningsWarnOutsideShellMode(self):
        with self.assertWarns(EmptyValueWarning):
            trigger(EmptyValueWarning("empty"))

    def testWarningsRenderInShellMode(self):
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            trigger(DeprecatedMemberWarning("old option"), shell=True)
        self.assertIn("old option", stderr.getvalue())

    def testRejectsOtherObjects(self):
        with self.assertRaises(TypeError):
            trigger(ValueError("x"))


class TestRendering(TestCase):
    """Behavioral tests for rich rendering of faults."""

    def testHeaderMessageAndHint(self):
        output = render(CommandException("something broke", code=FaultCode.HANDLER_FAILURE, title="command failed", hint="try again", prog="tool"))
        self.assertIn("[ tool — 11132 | Command Failed ]", output)
        self.assertIn("something broke", output)
        self.assertIn("→ try again", output)

    def testDefaultsWithoutOptions(self):
        output = render(CommandException("plain"))
        self.assertIn("[ cordage — - | CommandException ]", output)
        self.assertNotIn("→", output)

    def testFancyPanel(self):
        output = render(copy.replace(SchemaError("bad declarations"), fancy=True, colorful=False))
        self.assertIn("Malformed Schema", output)
        self.assertIn("bad declarations", output)
        self.assertIn("╭", output)

    def testFancyPanelSpansConsoleWidth(self):
        output = render(copy.replace(SchemaError("bad declarations"), fancy=True, colorful=False))
        self.assertEqual(len(output.splitlines()[0]), 120)


if __name__ == "__main__":
    unittest.main()
