from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from product_genius.db.base_class import Base

REVOKED_ON_LOGOUT = "logout"


class TokenBlacklist(Base):
    """Session tokens revoked before expiry, keyed by jti.

    Rows outlive their usefulness once ``expires_at`` passes; the
    ``cleanup_expired_blacklisted_tokens`` task purges them.
    """

    __tablename__ = "token_blacklist"

    id = Column(Integer, primary_key=True, index=True)
    jti = Column(String(64), unique=True, nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    token_type = Column(String(20), nullable=False)  # "access" or "refresh"
    reason = Column(String(50), nullable=False, default=REVOKED_ON_LOGOUT)
    expires_at = Column(DateTime, nullable=False, index=True)
    revoked_at = Column(DateTime, default=datetime.utcnow, nullable=False)
