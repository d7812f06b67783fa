"""
Cordage command line front end.

CommandLine ties the engine together for one handler object:

- parse(prompt): bind the property-only schema of the handler type and assign
  the values (settings objects, option bags).
- invoke(prompt): resolve the command named by the first token, bind the rest
  and call it (asynchronous handlers are run to completion).
- invoke_async(prompt): the same, awaiting asynchronous handlers in the
  running loop.
- run(prompt): the process boundary. faults become exit statuses and rendered
  text here and nowhere else.

Prompts
- Unset: read sys.argv[1:] (each argument is one unquoted token).
- str: tokenized with cordage.tokens.tokenize.
- Iterable[str | Token]: used as tokens as-is.
"""
import contextlib
import logging
import sys
import warnings
from collections.abc import Iterable
from pathlib import Path

from rich.console import Console

from .binding import bind
from .dispatch import HelpRequest, call, invoke, resolve
from .faults import CommandException, CommandWarning, trigger
from .schema import SchemaRegistry, registry as default_registry
from .tokens import Token, tokenize
from .usage import render
from .utils import Unset, coalesce

logger = logging.getLogger(__name__)

console = Console()


class CommandLine:
    """
    command line over one handler object.

    parameters
    - instance: the handler object (its type declares the commands/properties).
    - contexts: shared context objects receiving context member values.
    - registry: SchemaRegistry to use (defaults to the module-level registry).
    - help: reserved word requesting usage ("help").
    - prog: program name shown in messages (defaults to __prog__ in __main__,
      then the script name).
    - shell: render faults on stderr and return exit statuses instead of raising.
    - fancy: render faults inside panels.
    - colorful: style rendered output.
    """

    def __init__(
            self,
            instance,
            /,
            *,
            contexts=(),
            registry=Unset,
            help="help",
            prog=Unset,
            shell=False,
            fancy=False,
            colorful=True,
    ):
        if isinstance(instance, type):
            raise TypeError("command line argument must be an instance, not a type")
        if isinstance(contexts, str) or not isinstance(contexts, Iterable):
            raise TypeError("command line 'contexts' must be an iterable of objects")
        if not isinstance(registry, SchemaRegistry | Unset):
            raise TypeError("command line 'registry' must be a schema registry")
        if not isinstance(help, str) or not help.strip():
            raise TypeError("command line 'help' must be a non-empty string")
        if not isinstance(prog, str | Unset):
            raise TypeError("command line 'prog' must be a string")

        self._instance = instance
        self._contexts = tuple(contexts)
        self._registry = coalesce(registry, default_registry)
        self._help = help.strip()
        self._prog = coalesce(prog, getattr(__import__("__main__"), "__prog__", Path(sys.argv[0]).name or "cordage"))
        self.shell = bool(shell)
        self.fancy = bool(fancy)
        self.colorful = bool(colorful)

    @property
    def instance(self):
        return self._instance

    @property
    def registry(self):
        return self._registry

    @property
    def prog(self):
        return self._prog

    @staticmethod
    def tokens(prompt=Unset, /):
        """
        normalize a prompt into a tuple of tokens (see module docs).
        """
        if prompt is Unset:
            return tuple(map(Token, sys.argv[1:]))
        if isinstance(prompt, str):
            return tokenize(prompt)
        if isinstance(prompt, Iterable):
            tokens = []
            for item in prompt:
                if isinstance(item, Token):
                    tokens.append(item)
                elif isinstance(item, str):
                    tokens.append(Token(item))
                else:
                    raise TypeError("prompt must be a string or an iterable of strings")
            return tuple(tokens)
        raise TypeError("prompt must be a string or an iterable of strings")

    def parse(self, prompt=Unset, /):
        """
        bind the property-only schema of the handler type and assign its values.

        returns the BoundArguments.
        """
        schema = self._registry.register(type(self._instance))
        bound = bind(schema, self.tokens(prompt))
        call(schema, bound, self._instance, contexts=self._contexts)
        return bound

    def _resolve(self, prompt):
        return resolve(self._registry, type(self._instance), self.tokens(prompt), help=self._help)

    def invoke(self, prompt=Unset, /, *, cancel=None, timeout=None):
        """
        run the command named by the prompt and return its result, or the
        HelpRequest when usage was asked for.
        """
        if isinstance(resolved := self._resolve(prompt), HelpRequest):
            return resolved
        schema, rest = resolved
        bound = bind(schema, rest)
        return call(schema, bound, self._instance, contexts=self._contexts, cancel=cancel, timeout=timeout)

    async def invoke_async(self, prompt=Unset, /, *, cancel=None, timeout=None):
        """
        asynchronous twin of invoke(): awaits asynchronous handlers in the running loop.
        """
        if isinstance(resolved := self._resolve(prompt), HelpRequest):
            return resolved
        schema, rest = resolved
        bound = bind(schema, rest)
        return await invoke(schema, bound, self._instance, contexts=self._contexts, cancel=cancel, timeout=timeout)

    def usage(self, target=None, /):
        """
        return the usage renderable for every command, or for one.
        """
        return render(self._registry.commands(type(self._instance)), target, prog=self._prog, colorful=self.colorful)

    def _surface(self, fault):
        trigger(fault, prog=self._prog, shell=self.shell, fancy=self.fancy, colorful=self.colorful, deferred=True)

    def run(self, prompt=Unset, /):
        """
        invoke the prompt and report the outcome as an exit status.

        returns
        - 0 on success and after rendering usage.
        - 1 when tokenizing, binding, the guard or the handler failed (shell mode;
          outside shell mode the fault propagates).
        """
        failure = None
        recorder = warnings.catch_warnings(record=True) if self.shell else contextlib.nullcontext([])
        with recorder as caught:
            if self.shell:
                warnings.simplefilter("always", CommandWarning)
            try:
                result = self.invoke(prompt)
                if isinstance(result, HelpRequest):
                    console.print(self.usage(result.target))
            except CommandException as fault:
                logger.debug("command line failed: %r", fault)
                if not self.shell:
                    raise
                failure = fault

        for record in caught:
            if isinstance(record.message, CommandWarning):
                self._surface(record.message)
            else:
                warnings.warn_explicit(record.message, record.category, record.filename, record.lineno)

        if failure is not None:
            self._surface(failure)
            return 1
        return 0


__all__ = (
    "CommandLine",
)
