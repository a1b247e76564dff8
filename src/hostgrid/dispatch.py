"""Map parsed commands to page results."""

import logging
from typing import Callable, Dict

from prometheus_client import Counter

from .pages import (
    AdminUserList,
    BrowseListing,
    ErrorPage,
    GridView,
    IndexPage,
    InvalidCredentialsPage,
    LoginFormPage,
    MessagePage,
    NotFoundPage,
    PageResult,
    RegisterFormPage,
)
from .parse import (
    AdminAction,
    AdminSubcommand,
    BrowsePage,
    Command,
    GetGrid,
    Index,
    LoginAttempt,
    LoginPage,
    Logout,
    RegisterAttempt,
    RegisterPage,
    SetCell,
)
from .services import StoreError, UserStore


logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 16

STORE_ERROR_HEADER = "An error occurred while accessing the user store."
STORE_ERROR_DESCRIPTION = "The request could not be completed. Please try again later."

ADMIN_ACTION_COUNTER = Counter(
    "admin_actions_total", "Admin actions performed", ["subcommand"]
)

_HANDLERS: Dict[type, Callable[[Command, UserStore], PageResult]] = {}


def _handles(command_type: type):
    def register(func):
        _HANDLERS[command_type] = func
        return func

    return register


def _grid_link(username: str):
    return ("View grid", ("get", "username", username))


@_handles(Index)
def _index(command: Index, store: UserStore) -> PageResult:
    return IndexPage()


@_handles(LoginPage)
def _login_page(command: LoginPage, store: UserStore) -> PageResult:
    return LoginFormPage()


@_handles(RegisterPage)
def _register_page(command: RegisterPage, store: UserStore) -> PageResult:
    return RegisterFormPage()


@_handles(BrowsePage)
def _browse(command: BrowsePage, store: UserStore) -> PageResult:
    return BrowseListing(usernames=store.verified_usernames())


@_handles(LoginAttempt)
def _login(command: LoginAttempt, store: UserStore) -> PageResult:
    if store.authenticate(command.username, command.password) is None:
        return InvalidCredentialsPage()
    return MessagePage(
        title="Login success!",
        body=f"You are logged in as {command.username}.",
        links=(_grid_link(command.username),),
    )


@_handles(Logout)
def _logout(command: Logout, store: UserStore) -> PageResult:
    # Logging out with bad credentials still reports success.
    if store.authenticate(command.username, command.password) is None:
        logger.info("logout for %s with invalid credentials", command.username)
    return MessagePage(title="Logout success!", body="You are logged out.")


@_handles(RegisterAttempt)
def _register(command: RegisterAttempt, store: UserStore) -> PageResult:
    length = len(command.username)
    if length == 0:
        return MessagePage(
            title="Trying to register a zero-length username! How special.", status_code=400
        )
    if length < MIN_USERNAME_LENGTH:
        return MessagePage(
            title="Sorry, your username is too short.",
            body=f"{MIN_USERNAME_LENGTH} characters at minimum, please.",
            status_code=400,
        )
    if length > MAX_USERNAME_LENGTH:
        return MessagePage(
            title="Sorry, your username is too long.",
            body=f"{MAX_USERNAME_LENGTH} characters at maximum, please.",
            status_code=400,
        )

    if not store.create(command.username, command.password):
        return MessagePage(title=f"An account with the username '{command.username}' already exists!")
    return MessagePage(
        title="Your account was registered!",
        body="It will appear in the browse listing once an admin verifies it.",
        links=(_grid_link(command.username),),
    )


@_handles(GetGrid)
def _get_grid(command: GetGrid, store: UserStore) -> PageResult:
    user = store.get(command.username)
    if user is None:
        return NotFoundPage(username=command.username)
    return GridView(username=user.username, grid=user.grid)


@_handles(SetCell)
def _set_cell(command: SetCell, store: UserStore) -> PageResult:
    user_id = store.authenticate(command.username, command.password)
    if user_id is None:
        return InvalidCredentialsPage()
    if not store.set_cell(user_id, command.bit, command.checked):
        return NotFoundPage(username=command.username)

    user = store.get_by_id(user_id)
    if user is None:
        return NotFoundPage(username=command.username)
    return GridView(
        username=user.username,
        grid=user.grid,
        password=command.password,
        message=f"({command.x}, {command.y}) set to {str(command.checked).lower()}!",
    )


@_handles(AdminAction)
def _admin(command: AdminAction, store: UserStore) -> PageResult:
    subcommand = command.subcommand
    target = command.target_username
    ADMIN_ACTION_COUNTER.labels(subcommand=subcommand.value).inc()
    logger.warning("admin action %s target=%s", subcommand.value, target)

    if subcommand is AdminSubcommand.PANEL:
        return AdminUserList(title="Admin panel", users=store.all_users())
    if subcommand is AdminSubcommand.DUMP:
        return AdminUserList(title="User dump", users=store.all_users(), show_grid=True)

    if subcommand is AdminSubcommand.DELETE:
        done = store.delete(target)
        message = f"Deleted {target}."
    else:
        verified = subcommand is AdminSubcommand.VERIFY
        done = store.set_verified(target, verified)
        message = f"{target} is now {'verified' if verified else 'unverified'}."

    if not done:
        return NotFoundPage(username=target)
    return AdminUserList(title="Admin panel", users=store.all_users(), message=message)


def dispatch(command: Command, store: UserStore) -> PageResult:
    """Run ``command`` against ``store`` and return the page to render."""
    handler = _HANDLERS[type(command)]
    try:
        return handler(command, store)
    except StoreError as exc:
        description = str(exc) if isinstance(command, AdminAction) else STORE_ERROR_DESCRIPTION
        return ErrorPage(header=STORE_ERROR_HEADER, description=description, status_code=500)
