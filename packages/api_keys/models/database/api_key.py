from sqlalchemy import Column, String, Integer, ForeignKey

from common.db.base import Base, BigIntegerType, TimestampMixin


class ApiKeyEntity(TimestampMixin, Base):
    __tablename__ = "api_keys"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    user_id = Column(
        BigIntegerType,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String, nullable=False)
    key_hash = Column(String, nullable=False, unique=True, index=True)
    key_hint = Column(String(16), nullable=False)
    type = Column(String(10), nullable=False, server_default="dev")
    usage = Column(Integer, nullable=False, server_default="0")
    monthly_limit = Column(Integer, nullable=False)
