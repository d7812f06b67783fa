r"""
Cordage tokenizer: raw command text to tokens and back.

Grammar
- outside quotes, whitespace separates tokens.
- "..." opens a double-quoted region closed by the next unescaped '"'; inside it
  \" yields '"' and \\ yields '\'. any other backslash is kept literally and
  interior whitespace is preserved.
- '...' opens a single-quoted region with no escapes at all.
- outside quotes, a backslash escapes the next character (including whitespace);
  a lone trailing backslash is kept literally.
- adjacent pieces join into one token: --name="a b" is the single token `--name=a b`.

Quoted tokens
- Token.quoted is true when the token's leading character came from a quoted
  region or an escape. the binder never treats such a token as an option or as
  the `--` terminator, so `"--list"` is always a value.

Public API
- Token, scan, tokenize, detokenize, split
"""
from typing import NamedTuple

from .faults import CommandSyntaxError
from .utils import ordinal

_SPECIALS = frozenset('\\"\'')


class Token(NamedTuple):
    """
    one lexical unit of command text.

    fields
    - text: the unescaped, unquoted content.
    - quoted: whether the leading character was quoted or escaped.
    """
    text: str
    quoted: bool = False

    def __str__(self):
        return self.text


def scan(raw, /):
    r"""
    lazily yield the tokens of `raw` from left to right.

    every call returns a fresh generator, so a scan can be restarted at will.

    errors
    - TypeError when raw is not a string.
    - CommandSyntaxError (when the generator reaches it) on an unterminated quote;
      options carry `position` (0-based offset of the opening quote) and `quote`.
    """
    if not isinstance(raw, str):
        raise TypeError("scan() argument must be a string")
    return _scan(raw)


def _scan(raw):
    buffer = []
    started = quoted = False
    index, length = 0, len(raw)

    while index < length:
        char = raw[index]

        if char.isspace():
            if started:
                yield Token("".join(buffer), quoted)
                buffer.clear()
                started = quoted = False
            index += 1
            continue

        if not started:
            started = True
            quoted = char in _SPECIALS and not (char == "\\" and index + 1 == length)

        if char == '"':
            opening = index
            index += 1
            while True:
                if index >= length:
                    raise _unterminated(raw, opening)
                char = raw[index]
                if char == "\\" and index + 1 < length and raw[index + 1] in '"\\':
                    buffer.append(raw[index + 1])
                    index += 2
                    continue
                index += 1
                if char == '"':
                    break
                buffer.append(char)
        elif char == "'":
            opening = index
            try:
                closing = raw.index("'", index + 1)
            except ValueError:
                raise _unterminated(raw, opening) from None
            buffer.append(raw[index + 1:closing])
            index = closing + 1
        elif char == "\\" and index + 1 < length:
            buffer.append(raw[index + 1])
            index += 2
        else:
            buffer.append(char)
            index += 1

    if started:
        yield Token("".join(buffer), quoted)


def _unterminated(raw, position):
    quote = raw[position]
    return CommandSyntaxError(
        "unterminated %s quote opened at %s character" % (
            "double" if quote == '"' else "single",
            ordinal(position + 1)
        ),
        position=position,
        quote=quote,
        text=raw,
    )


def tokenize(raw, /):
    """
    eagerly tokenize `raw` into a tuple of tokens.

    unlike scan(), errors are raised at call time and the result can be
    iterated any number of times.
    """
    return tuple(scan(raw))


def _quote(text):
    return '"%s"' % text.replace("\\", "\\\\").replace('"', '\\"')


def _escape(text):
    return "".join("\\" + char if char in _SPECIALS or char.isspace() else char for char in text)


def detokenize(tokens, /):
    """
    join tokens back into command text such that tokenize(detokenize(t)) == t.

    rules
    - quoted or empty tokens are wrapped in double quotes (escaping '\\' and '"').
    - unquoted tokens are emitted as-is, escaping quotes, backslashes and
      whitespace after the leading character.
    - an unquoted token that begins with a quote or backslash cannot be spelled
      unquoted; it is emitted quoted. such text is never option-shaped, so
      binding the result is unaffected.

    errors
    - TypeError when tokens is a bare string or holds something else than
      Token/str items.
    """
    if isinstance(tokens, str):
        raise TypeError("detokenize() argument must be an iterable of tokens, not a string")
    pieces = []
    for token in tokens:
        if isinstance(token, Token):
            text, quoted = token
        elif isinstance(token, str):
            text, quoted = token, False
        else:
            raise TypeError("detokenize() argument must be an iterable of tokens")
        if quoted or not text or text[0] in _SPECIALS or text[0].isspace():
            pieces.append(_quote(text))
        else:
            pieces.append(text[0] + _escape(text[1:]))
    return " ".join(pieces)


def split(raw, /):
    """
    peel the first token off `raw`.

    returns
    - (first, rest): the first token's text ("" when there is none) and the
      remaining tokens as a tuple.
    """
    tokens = tokenize(raw)
    if not tokens:
        return "", ()
    return tokens[0].text, tokens[1:]


__all__ = (
    "Token",
    "scan",
    "tokenize",
    "detokenize",
    "split",
)
