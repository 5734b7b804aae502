from dataclasses import dataclass
from typing import Optional, Tuple

WHITESPACE = " \t"
DQUOTE_ESCAPABLE = '\\"$`'

# Most specific first so "2>>" is never read as "2>" and no stderr
# operator is ever taken for a stdout one.
REDIRECT_OPERATORS = (
    ("2>>", "stderr", True),
    ("2>", "stderr", False),
    ("1>>", "stdout", True),
    ("1>", "stdout", False),
    (">>", "stdout", True),
    (">", "stdout", False),
)


class PipeToken(str):
    """An unquoted ``|``; a quoted one stays a plain ``str``."""


class LiteralToken(str):
    """A word spelled like a redirection operator whose operator part was quoted or escaped."""


PIPE = PipeToken("|")


@dataclass(frozen=True)
class Redirection:
    stream: str  # "stdout" or "stderr"
    target: str
    append: bool = False


@dataclass(frozen=True)
class Stage:
    command: str
    args: Tuple[str, ...] = ()
    stdout: Optional[Redirection] = None
    stderr: Optional[Redirection] = None

    @property
    def argv(self):
        return [self.command, *self.args]


def tokenize(line):
    """
    Split a raw command line into tokens.

    Quote characters are zero-width, so ``a"b"c`` is the single token
    ``abc``. An unterminated quote stays open to the end of the line and
    whatever it collected becomes the last token.
    """
    tokens = []
    buf = []
    started = False  # distinguishes "" (empty token) from no token
    bare = 0  # leading characters written without quotes or escapes
    bare_open = True
    quote = None
    i = 0
    n = len(line)

    def flush():
        nonlocal started, bare, bare_open
        if started:
            word = "".join(buf)
            matched = _match_operator(word)
            if matched is not None and len(matched[0]) > bare:
                word = LiteralToken(word)
            tokens.append(word)
            buf.clear()
            started = False
        bare = 0
        bare_open = True

    while i < n:
        ch = line[i]
        if quote == "'":
            if ch == "'":
                quote = None
            else:
                buf.append(ch)
        elif quote == '"':
            if ch == '"':
                quote = None
            elif ch == "\\" and i + 1 < n and line[i + 1] in DQUOTE_ESCAPABLE:
                buf.append(line[i + 1])
                i += 1
            else:
                buf.append(ch)
        elif ch in WHITESPACE:
            flush()
        elif ch == "\\":
            bare_open = False
            if i + 1 < n:
                buf.append(line[i + 1])
                started = True
            i += 1
        elif ch in "'\"":
            bare_open = False
            quote = ch
            started = True
        elif ch == "|":
            flush()
            tokens.append(PIPE)
        else:
            if bare_open:
                bare += 1
            buf.append(ch)
            started = True
        i += 1

    flush()
    return tokens


def _match_operator(token):
    for op, stream, append in REDIRECT_OPERATORS:
        if token.startswith(op):
            return op, stream, append
    return None


def extract_redirections(tokens):
    """
    Pull redirection operators and their targets out of one stage's tokens.
    Returns (command_tokens, stdout, stderr); a later operator for the same
    stream replaces an earlier one.
    """
    command = []
    found = {"stdout": None, "stderr": None}
    i = 0

    while i < len(tokens):
        tok = tokens[i]
        matched = None if isinstance(tok, LiteralToken) else _match_operator(tok)
        if matched is None:
            command.append(tok)
            i += 1
            continue

        op, stream, append = matched
        target = tok[len(op):]
        if target:
            i += 1
        elif i + 1 < len(tokens):
            target = tokens[i + 1]
            i += 2
        else:
            # dangling operator with nothing to redirect to
            i += 1
            continue
        found[stream] = Redirection(stream, str(target), append)

    return command, found["stdout"], found["stderr"]


def split_pipeline(tokens):
    """Split on unquoted pipes, dropping empty segments."""
    segments, cur = [], []
    for tok in tokens:
        if isinstance(tok, PipeToken):
            if cur:
                segments.append(cur)
            cur = []
        else:
            cur.append(tok)
    if cur:
        segments.append(cur)
    return segments


def build_pipeline(tokens):
    stages = []
    for segment in split_pipeline(tokens):
        words, stdout, stderr = extract_redirections(segment)
        if not words:
            # only redirections, nothing to run
            continue
        stages.append(Stage(str(words[0]), tuple(str(w) for w in words[1:]), stdout, stderr))
    return stages


def parse_command(line):
    """Parse a raw line into a list of Stage (empty for a blank line)."""
    return build_pipeline(tokenize(line.strip()))
