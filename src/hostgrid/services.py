"""User store backed by the ``users`` table."""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional

from prometheus_client import Counter
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .config import settings
from .database import SessionLocal
from .hashing import PasswordHasher
from .models.user import User
from .parse import HEIGHT, WIDTH


logger = logging.getLogger(__name__)

GRID_MASK = (1 << (WIDTH * HEIGHT)) - 1

REGISTRATION_COUNTER = Counter(
    "user_registrations_total", "Registration attempts by outcome", ["outcome"]
)
CELL_UPDATE_COUNTER = Counter(
    "grid_cell_updates_total", "Grid cell updates applied", ["checked"]
)
AUTH_FAILURE_COUNTER = Counter(
    "authentication_failures_total", "Rejected username/password pairs"
)


class StoreError(Exception):
    """The user store could not complete an operation."""


@dataclass(frozen=True)
class UserRecord:
    """Detached snapshot of a user row; never outlives one request."""

    id: int
    username: str
    grid: int
    verified: bool


def _record(user: User) -> UserRecord:
    return UserRecord(id=user.id, username=user.username, grid=user.grid, verified=user.verified)


class UserStore:
    """Persistence operations for users and their grids.

    Every method opens its own session; failures roll back and surface as
    :class:`StoreError`.
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        hasher: Optional[PasswordHasher] = None,
    ) -> None:
        self._session_factory = session_factory or SessionLocal
        self._hasher = hasher or PasswordHasher(settings.hashing_mode)

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        try:
            session: Session = self._session_factory()
        except SQLAlchemyError as exc:
            logger.exception("could not open session for %s", operation)
            raise StoreError(str(exc)) from exc
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("store error during %s", operation)
            raise StoreError(str(exc)) from exc
        finally:
            session.close()

    def get(self, username: str) -> Optional[UserRecord]:
        with self._session("get") as session:
            user = session.execute(
                select(User).where(User.username == username)
            ).scalar_one_or_none()
            return _record(user) if user else None

    def create(self, username: str, password: str) -> bool:
        """Insert a new user. Returns False if the username is taken.

        The unique constraint decides; there is no existence pre-check.
        """
        digest, salt, scheme = self._hasher.hash(password)
        with self._session("create") as session:
            session.add(
                User(
                    username=username,
                    password_hash=digest,
                    salt=salt,
                    hash_scheme=scheme,
                    grid=0,
                    verified=False,
                )
            )
            try:
                session.flush()
            except IntegrityError:
                session.rollback()
                taken = session.execute(
                    select(User.id).where(User.username == username)
                ).first()
                if taken is None:
                    # Some other constraint failed; let _session report it.
                    raise
                REGISTRATION_COUNTER.labels(outcome="duplicate").inc()
                return False
        REGISTRATION_COUNTER.labels(outcome="created").inc()
        logger.info("registered user %s", username)
        return True

    def authenticate(self, username: str, password: str) -> Optional[int]:
        """Return the user id when the password matches, otherwise None.

        Unknown usernames still pay for one hash so both failures look alike.
        Hashes stored under a different scheme are upgraded on success.
        """
        with self._session("authenticate") as session:
            user = session.execute(
                select(User).where(User.username == username)
            ).scalar_one_or_none()
            if user is None:
                self._hasher.verify(password, bytes(32), bytes(8), self._hasher.scheme)
                AUTH_FAILURE_COUNTER.inc()
                return None

            if not self._hasher.verify(password, user.password_hash, user.salt, user.hash_scheme):
                AUTH_FAILURE_COUNTER.inc()
                return None

            if self._hasher.needs_rehash(user.hash_scheme):
                digest, salt, scheme = self._hasher.hash(password)
                session.execute(
                    update(User)
                    .where(User.id == user.id)
                    .values(password_hash=digest, salt=salt, hash_scheme=scheme)
                    .execution_options(synchronize_session=False)
                )
                logger.info(
                    "rehashed password for %s from %s to %s", username, user.hash_scheme, scheme
                )
            return user.id

    def set_cell(self, user_id: int, bit: int, checked: bool) -> bool:
        """Set or clear one grid bit in a single UPDATE keyed by user id."""
        mask = 1 << bit
        if checked:
            value = User.grid.op("|")(mask)
        else:
            value = User.grid.op("&")(GRID_MASK ^ mask)
        with self._session("set_cell") as session:
            result = session.execute(
                update(User)
                .where(User.id == user_id)
                .values(grid=value)
                .execution_options(synchronize_session=False)
            )
        updated = result.rowcount > 0
        if updated:
            CELL_UPDATE_COUNTER.labels(checked=str(checked).lower()).inc()
        return updated

    def get_by_id(self, user_id: int) -> Optional[UserRecord]:
        with self._session("get_by_id") as session:
            user = session.get(User, user_id)
            return _record(user) if user else None

    def verified_usernames(self) -> List[str]:
        with self._session("verified_usernames") as session:
            return list(
                session.execute(
                    select(User.username).where(User.verified.is_(True)).order_by(User.username)
                ).scalars()
            )

    def all_users(self) -> List[UserRecord]:
        with self._session("all_users") as session:
            users = session.execute(select(User).order_by(User.id)).scalars()
            return [_record(user) for user in users]

    def set_verified(self, username: str, verified: bool) -> bool:
        with self._session("set_verified") as session:
            result = session.execute(
                update(User)
                .where(User.username == username)
                .values(verified=verified)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount > 0

    def delete(self, username: str) -> bool:
        with self._session("delete") as session:
            result = session.execute(
                delete(User)
                .where(User.username == username)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount > 0
