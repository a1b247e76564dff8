"""Host extraction and subdomain query parsing.

Every request is carried by the single DNS label in front of the site suffix,
for example ``check-2-2-username-alice-password-secret.example.com``. The label
is split on ``-`` and matched against a fixed grammar table. Segment 0 picks
the candidate grammars; each grammar fixes the segment count and, per
position, either a literal keyword or a typed slot.

Parsing never touches the store and never raises anything but a
:class:`ParseError` subclass.
"""

import hmac
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

WIDTH = 5
HEIGHT = 5
SEPARATOR = "-"


class ParseError(Exception):
    """A label (or hostname) that does not describe any command."""

    kind: Optional[str] = None

    def __init__(self, message: str, kind: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class BadHostname(ParseError):
    def __init__(self, suffix: str) -> None:
        super().__init__(f"Bad hostname (expected {suffix}). Please try again never.")
        self.suffix = suffix


class NoSubdomain(BadHostname):
    def __init__(self, suffix: str) -> None:
        ParseError.__init__(
            self,
            "No subdomain. This site transmits all information to the server through the subdomain.",
        )
        self.suffix = suffix


class UnknownQueryKind(ParseError):
    def __init__(self, query: str) -> None:
        super().__init__(f"Unknown subdomain query {query}.", kind=query)
        self.query = query


class InvalidLength(ParseError):
    def __init__(self, expected: int, actual: int, kind: str) -> None:
        super().__init__(
            f"Expected {expected} segments for query {kind}, got {actual}.", kind=kind
        )
        self.expected = expected
        self.actual = actual


class ExpectedLiteral(ParseError):
    def __init__(self, expected: str, position: int, kind: str) -> None:
        super().__init__(
            f"Expected text {expected} at segment {position} in query {kind}.", kind=kind
        )
        self.expected = expected
        self.position = position


class Unparseable(ParseError):
    def __init__(self, position: int, kind: str) -> None:
        super().__init__(f"Could not parse segment {position} in query {kind}.", kind=kind)
        self.position = position


class IllegalToken(ParseError):
    def __init__(self, position: int, kind: str) -> None:
        super().__init__(f"Illegal token at segment {position} in query {kind}.", kind=kind)
        self.position = position


@dataclass(frozen=True)
class Index:
    pass


@dataclass(frozen=True)
class LoginPage:
    pass


@dataclass(frozen=True)
class RegisterPage:
    pass


@dataclass(frozen=True)
class BrowsePage:
    pass


@dataclass(frozen=True)
class LoginAttempt:
    username: str
    password: str


@dataclass(frozen=True)
class RegisterAttempt:
    username: str
    password: str


@dataclass(frozen=True)
class Logout:
    username: str
    password: str


@dataclass(frozen=True)
class GetGrid:
    username: str


@dataclass(frozen=True)
class SetCell:
    x: int
    y: int
    checked: bool
    username: str
    password: str

    @property
    def bit(self) -> int:
        return self.y * WIDTH + self.x


class AdminSubcommand(str, Enum):
    PANEL = "panel"
    VERIFY = "verify"
    UNVERIFY = "unverify"
    DELETE = "delete"
    DUMP = "dump"


@dataclass(frozen=True)
class AdminAction:
    subcommand: AdminSubcommand
    target_username: Optional[str] = None


Command = Union[
    Index,
    LoginPage,
    RegisterPage,
    BrowsePage,
    LoginAttempt,
    RegisterAttempt,
    Logout,
    GetGrid,
    SetCell,
    AdminAction,
]


class Slot(Enum):
    """Wildcard positions in a grammar."""

    USERNAME = "username"
    NEW_USERNAME = "new_username"  # may be empty, length is judged by the dispatcher
    PASSWORD = "password"
    X = "x"
    Y = "y"
    CHECKED = "checked"
    SECRET = "secret"


Token = Union[str, Slot]


@dataclass(frozen=True)
class Grammar:
    pattern: Tuple[Token, ...]
    build: Callable[..., Command]

    @property
    def kind(self) -> str:
        return self.pattern[0]  # type: ignore[return-value]


def _credentials(prefix: Tuple[Token, ...], user_slot: Slot = Slot.USERNAME) -> Tuple[Token, ...]:
    return prefix + ("username", user_slot, "password", Slot.PASSWORD)


def _set_cell(checked: bool) -> Callable[..., Command]:
    def build(x: int, y: int, username: str, password: str) -> Command:
        return SetCell(x=x, y=y, checked=checked, username=username, password=password)

    return build


def _admin(subcommand: AdminSubcommand) -> Callable[..., Command]:
    def build(username: Optional[str] = None) -> Command:
        return AdminAction(subcommand=subcommand, target_username=username)

    return build


# Grammars sharing a discriminator are listed most specific first.
GRAMMARS: Dict[str, List[Grammar]] = {
    "index": [Grammar(("index",), lambda: Index())],
    "browse": [Grammar(("browse",), lambda: BrowsePage())],
    "login": [
        Grammar(_credentials(("login",)), LoginAttempt),
        Grammar(("login",), lambda: LoginPage()),
    ],
    "register": [
        Grammar(
            _credentials(("register",), Slot.NEW_USERNAME),
            lambda new_username, password: RegisterAttempt(new_username, password),
        ),
        Grammar(("register",), lambda: RegisterPage()),
    ],
    "logout": [Grammar(_credentials(("logout",)), Logout)],
    "get": [Grammar(("get", "username", Slot.USERNAME), GetGrid)],
    "check": [Grammar(_credentials(("check", Slot.X, Slot.Y)), _set_cell(True))],
    "uncheck": [Grammar(_credentials(("uncheck", Slot.X, Slot.Y)), _set_cell(False))],
    "set": [
        Grammar(
            _credentials(("set", "checkbox", "x", Slot.X, "y", Slot.Y, "to", Slot.CHECKED)),
            SetCell,
        )
    ],
    "admin": [
        Grammar(("admin", Slot.SECRET, "verify", Slot.USERNAME), _admin(AdminSubcommand.VERIFY)),
        Grammar(
            ("admin", Slot.SECRET, "unverify", Slot.USERNAME), _admin(AdminSubcommand.UNVERIFY)
        ),
        Grammar(("admin", Slot.SECRET, "delete", Slot.USERNAME), _admin(AdminSubcommand.DELETE)),
        Grammar(("admin", Slot.SECRET, "username", "dump"), _admin(AdminSubcommand.DUMP)),
        Grammar(("admin", Slot.SECRET), _admin(AdminSubcommand.PANEL)),
    ],
}


def strip_port(host: str) -> str:
    """Drop a trailing ``:port`` from a Host header value."""
    name, sep, port = host.rpartition(":")
    if sep and port.isdigit():
        return name
    return host


def normalize_host(host: str) -> str:
    """Lowercase a Host header value, drop its port and one trailing root dot."""
    hostname = strip_port(host.lower())
    if hostname.endswith("."):
        hostname = hostname[:-1]
    return hostname


def extract_label(hostname: str, suffix: str) -> str:
    """Return the label directly in front of ``suffix``.

    ``hostname`` must already be lowercased. Labels further left are dropped.
    """
    if not suffix or not hostname.endswith(suffix):
        raise BadHostname(suffix)

    head = hostname[: len(hostname) - len(suffix)]
    if not head:
        raise NoSubdomain(suffix)
    if not head.endswith("."):
        raise BadHostname(suffix)

    discarded, _, label = head[:-1].rpartition(".")
    if not label:
        raise NoSubdomain(suffix)
    if discarded:
        logger.debug("ignoring leading labels %r in front of %r", discarded, label)
    return label


def _coordinate(segment: str, limit: int, position: int, kind: str) -> int:
    if not (segment.isascii() and segment.isdigit()):
        raise Unparseable(position, kind)
    try:
        value = int(segment)
    except ValueError:
        raise Unparseable(position, kind) from None
    if value >= limit:
        raise Unparseable(position, kind)
    return value


def _convert(slot: Slot, segment: str, position: int, kind: str):
    if slot is Slot.X:
        return _coordinate(segment, WIDTH, position, kind)
    if slot is Slot.Y:
        return _coordinate(segment, HEIGHT, position, kind)
    if slot is Slot.CHECKED:
        if segment == "checked":
            return True
        if segment == "unchecked":
            return False
        raise IllegalToken(position, kind)
    if slot is Slot.NEW_USERNAME:
        return segment
    if not segment:
        raise Unparseable(position, kind)
    return segment


def _match(grammar: Grammar, segments: List[str]) -> Command:
    kind = grammar.kind
    if len(segments) != len(grammar.pattern):
        raise InvalidLength(len(grammar.pattern), len(segments), kind)

    values = {}
    for position, (token, segment) in enumerate(zip(grammar.pattern, segments)):
        if isinstance(token, str):
            if segment != token:
                raise ExpectedLiteral(token, position, kind)
        elif token is not Slot.SECRET:
            values[token.value] = _convert(token, segment, position, kind)
    return grammar.build(**values)


def _admin_authorized(segments: List[str], admin_secret: Optional[str]) -> bool:
    if not admin_secret or len(segments) < 2:
        return False
    return hmac.compare_digest(
        segments[1].encode("utf-8"), admin_secret.lower().encode("utf-8")
    )


def parse_query(label: str, admin_secret: Optional[str] = None) -> Command:
    """Parse a subdomain label into a :data:`Command`.

    Raises a :class:`ParseError` subclass describing the first mismatch.
    """
    segments = label.split(SEPARATOR)
    first = segments[0]

    grammars = GRAMMARS.get(first)
    if grammars is None:
        raise UnknownQueryKind(first)
    if first == "admin" and not _admin_authorized(segments, admin_secret):
        raise UnknownQueryKind(first)

    # Report the grammar that got furthest: a literal mismatch beats a length
    # mismatch, and a later literal mismatch beats an earlier one.
    failure: Optional[ParseError] = None
    for grammar in grammars:
        try:
            return _match(grammar, segments)
        except ExpectedLiteral as exc:
            if not isinstance(failure, ExpectedLiteral) or exc.position > failure.position:
                failure = exc
        except InvalidLength as exc:
            if failure is None:
                failure = exc
    raise failure
