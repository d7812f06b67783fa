"""
Cordage invocation dispatcher.

Overview
- invoke(): coroutine applying bound arguments to a handler instance and calling
  (and awaiting) the command handler.
- call(): synchronous twin of invoke() for callers without an event loop.
- resolve(): picks the command named by the first token, or recognizes a help
  request.

Order of operations (invoke/call)
1. every bound property value (and property array) is assigned to its target in
   schema order: the handler instance for members it declares, the matching
   context object for context members.
2. property-only schemas stop here and return None.
3. the `can_<name>` guard, when present, must be truthy; otherwise
   PreconditionFailed is raised and the handler is not called.
4. parameters are assembled in signature order (the array expands in place, the
   cancellation parameter receives the given event or a fresh one).
5. the handler is called; awaitable results are awaited under the deadline.

Any Exception raised by the handler surfaces as HandlerInvocationError chained
to the original; cancellation (asyncio.CancelledError) passes through untouched.
"""
import asyncio
import difflib
import inspect
import logging
from collections.abc import Iterable
from typing import NamedTuple

from .binding import BoundArguments
from .faults import BindingError, BindingKind, HandlerInvocationError, PreconditionFailed
from .members import MemberKind
from .schema import CommandSchema, SchemaRegistry
from .tokens import Token

logger = logging.getLogger(__name__)


class HelpRequest(NamedTuple):
    """
    the input asked for usage instead of a command; target is the command
    name that followed the help word, or None.
    """
    target: str | None = None


def _target(member, instance, contexts):
    if isinstance(instance, member.source):
        return instance
    for context in contexts:
        if isinstance(context, member.source):
            return context
    raise TypeError(
        f"no {member.source.__qualname__} context object given for member {member.name!r}"
    )


def _prepare(schema, bound, instance, contexts, cancel):
    """
    internal: steps 1-4 of the dispatch; returns (handler, args, kwargs) or None.
    """
    if not isinstance(schema, CommandSchema):
        raise TypeError("first argument must be a command schema")
    if not isinstance(bound, BoundArguments):
        raise TypeError("second argument must be bound arguments")
    if bound.schema is not schema:
        raise ValueError("arguments were bound against another schema")
    if not isinstance(instance, schema.owner):
        raise TypeError(f"third argument must be an instance of {schema.owner.__qualname__}")
    if isinstance(contexts, str) or not isinstance(contexts, Iterable):
        raise TypeError("'contexts' must be an iterable of objects")
    if not isinstance(cancel, asyncio.Event | None):
        raise TypeError("'cancel' must be an asyncio event")
    contexts = tuple(contexts)

    for member, value in bound.items():
        if member.source is None:
            continue
        setattr(_target(member, instance, contexts), member.attribute, value)

    if schema.handler is None:
        return None

    if schema.guard is not None:
        allowed = getattr(instance, schema.guard)
        if callable(allowed):
            allowed = allowed()
        if not allowed:
            raise PreconditionFailed(
                "command %r cannot run right now" % schema.name,
                command=schema.name,
                hint="check the state that %r depends on and try again" % schema.guard,
            )

    args, kwargs = [], {}
    for slot in schema.slots:
        if slot.member is None:
            value = cancel if cancel is not None else asyncio.Event()
        elif slot.member.kind is MemberKind.ARRAY:
            args.extend(bound.get(slot.member, ()))
            continue
        else:
            value = bound.get(slot.member)
        if slot.kind is inspect.Parameter.KEYWORD_ONLY:
            kwargs[slot.name] = value
        else:
            args.append(value)

    return getattr(instance, schema.attribute), args, kwargs


def _failure(schema, exception):
    return HandlerInvocationError(
        "command %r failed: %s" % (schema.name, str(exception) or type(exception).__name__),
        cause=exception,
        command=schema.name,
    )


async def _await(schema, awaitable, timeout):
    try:
        async with asyncio.timeout(timeout):
            return await awaitable
    except Exception as exception:
        raise _failure(schema, exception) from exception


async def invoke(schema, bound, instance, /, *, contexts=(), cancel=None, timeout=None):
    """
    apply `bound` to `instance` and run the command handler.

    parameters
    - schema: CommandSchema the arguments were bound against.
    - bound: BoundArguments from bind().
    - instance: object of the schema's owner type.
    - contexts: objects receiving the values of context members.
    - cancel: asyncio.Event forwarded to the handler's cancellation parameter.
    - timeout: deadline in seconds for awaiting the handler (None: no deadline).

    returns
    - the handler's result, or None for property-only schemas.

    errors
    - PreconditionFailed: the guard rejected the call.
    - HandlerInvocationError: the handler raised (including on deadline expiry).
    - TypeError / ValueError: arguments do not belong together.
    """
    if (prepared := _prepare(schema, bound, instance, contexts, cancel)) is None:
        return None
    handler, args, kwargs = prepared
    logger.debug("invoking %s (asynchronous=%s)", schema.name, schema.asynchronous)
    try:
        result = handler(*args, **kwargs)
    except Exception as exception:
        raise _failure(schema, exception) from exception
    if inspect.isawaitable(result):
        result = await _await(schema, result, timeout)
    return result


def call(schema, bound, instance, /, *, contexts=(), cancel=None, timeout=None):
    """
    synchronous twin of invoke(): same contract, same errors.

    awaitable results (asynchronous handlers) are run to completion through
    asyncio.run(). inside a running event loop that is impossible: call()
    then closes the pending coroutine and raises RuntimeError; await invoke()
    there.
    """
    if (prepared := _prepare(schema, bound, instance, contexts, cancel)) is None:
        return None
    handler, args, kwargs = prepared
    logger.debug("calling %s (asynchronous=%s)", schema.name, schema.asynchronous)
    try:
        result = handler(*args, **kwargs)
    except Exception as exception:
        raise _failure(schema, exception) from exception
    if not inspect.isawaitable(result):
        return result
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(_await(schema, result, timeout))
    if inspect.iscoroutine(result):
        result.close()
    raise RuntimeError(f"call() cannot run command {schema.name!r} inside a running event loop; await invoke() instead")


def resolve(registry, owner, tokens, /, *, help="help"):
    """
    pick the command named by the first token.

    returns
    - (schema, rest): the command schema and the remaining tokens; or
    - HelpRequest(target): when the input is empty or starts with the help word.

    errors
    - BindingError(kind=UNKNOWN_COMMAND): no command has that name or alias;
      close matches are attached as `suggestions`.
    """
    if not isinstance(registry, SchemaRegistry):
        raise TypeError("resolve() first argument must be a schema registry")
    if isinstance(tokens, str):
        raise TypeError("resolve() tokens must be an iterable of tokens, not a string")
    tokens = tuple(token if isinstance(token, Token) else Token(token) for token in tokens)

    if not tokens:
        return HelpRequest()
    first, rest = tokens[0], tokens[1:]
    if first.text == help and not first.quoted:
        return HelpRequest(rest[0].text if rest else None)

    commands = registry.commands(owner)
    try:
        return commands[first.text], rest
    except KeyError:
        suggestions = difflib.get_close_matches(first.text, commands.keys(), 5)
        try:
            hint = "did you mean %r? you can also run '%s' to see available commands" % (suggestions[0], help)
        except IndexError:
            hint = "run '%s' to see available commands" % help
        raise BindingError(
            "unknown command %r" % first.text,
            kind=BindingKind.UNKNOWN_COMMAND,
            member=None,
            token=first.text,
            suggestions=suggestions,
            hint=hint,
        ) from None


__all__ = (
    "HelpRequest",
    "invoke",
    "call",
    "resolve",
)
