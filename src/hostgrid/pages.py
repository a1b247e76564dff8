"""Page results produced by the dispatcher and consumed by the renderer."""

from dataclasses import dataclass, field
from typing import ClassVar, List, Optional, Tuple, Union

from .parse import HEIGHT, WIDTH
from .services import UserRecord

# (link text, query segments); the renderer turns segments into a hostname
Link = Tuple[str, Tuple[str, ...]]


@dataclass(frozen=True)
class IndexPage:
    status_code: ClassVar[int] = 200


@dataclass(frozen=True)
class LoginFormPage:
    status_code: ClassVar[int] = 200


@dataclass(frozen=True)
class RegisterFormPage:
    status_code: ClassVar[int] = 200


@dataclass(frozen=True)
class BrowseListing:
    usernames: List[str]
    status_code: ClassVar[int] = 200


@dataclass(frozen=True)
class MessagePage:
    title: str
    body: str = ""
    links: Tuple[Link, ...] = ()
    status_code: int = 200


@dataclass(frozen=True)
class GridView:
    username: str
    grid: int
    password: Optional[str] = None
    message: Optional[str] = None
    status_code: ClassVar[int] = 200

    def is_checked(self, x: int, y: int) -> bool:
        return bool(self.grid >> (y * WIDTH + x) & 1)

    @property
    def rows(self) -> List[List[bool]]:
        return [[self.is_checked(x, y) for x in range(WIDTH)] for y in range(HEIGHT)]

    @property
    def bits(self) -> str:
        return format(self.grid, f"0{WIDTH * HEIGHT}b")


@dataclass(frozen=True)
class NotFoundPage:
    username: str
    status_code: ClassVar[int] = 404


@dataclass(frozen=True)
class InvalidCredentialsPage:
    header: ClassVar[str] = "Invalid credentials!"
    description: ClassVar[str] = "Unfortunately, either your username or password was incorrect."
    status_code: ClassVar[int] = 401


@dataclass(frozen=True)
class ErrorPage:
    header: str
    description: str
    status_code: int = 400


@dataclass(frozen=True)
class AdminUserList:
    title: str
    users: List[UserRecord] = field(default_factory=list)
    message: Optional[str] = None
    show_grid: bool = False
    status_code: ClassVar[int] = 200


PageResult = Union[
    IndexPage,
    LoginFormPage,
    RegisterFormPage,
    BrowseListing,
    MessagePage,
    GridView,
    NotFoundPage,
    InvalidCredentialsPage,
    ErrorPage,
    AdminUserList,
]
