from datetime import datetime

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Integer, LargeBinary, String

from ..database import Base


class User(Base):
    """A registered account and its packed checkbox grid."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(LargeBinary(32), nullable=False)
    salt = Column(LargeBinary(8), nullable=False)
    hash_scheme = Column(String(16), nullable=False)
    grid = Column(BigInteger, default=0, nullable=False)
    verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
