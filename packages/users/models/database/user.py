from sqlalchemy import Column, String, Integer, DateTime, JSON, UniqueConstraint

from common.db.base import Base, BigIntegerType, TimestampMixin


class UserEntity(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    email = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=True)
    image = Column(String, nullable=True)
    sso_provider = Column(String, nullable=False, server_default="google")
    sso_user_id = Column(String, nullable=True, index=True)  # Provider subject

    # Plan and credit pool
    plan = Column(String(20), nullable=False, server_default="free")
    total_credits = Column(Integer, nullable=False, server_default="5")
    used_credits = Column(Integer, nullable=False, server_default="0")
    lifetime_used_credits = Column(Integer, nullable=False, server_default="0")
    credits_period = Column(String(7), nullable=True)  # YYYY-MM of used_credits

    # Login bookkeeping
    login_count = Column(Integer, nullable=False, server_default="0")
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    user_metadata = Column("metadata", JSON, nullable=False, server_default="{}")

    __table_args__ = (
        UniqueConstraint("sso_provider", "sso_user_id", name="uq_users_sso_identity"),
    )
