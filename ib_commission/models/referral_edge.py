"""
ReferralEdge model.

"child was referred by beneficiary". Maintained by referral management;
read-only to the commission engine.
"""

from datetime import UTC, datetime

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from ib_commission.models.base import Base
from ib_commission.models.enums import ReferralEdgeStatus


class ReferralEdge(Base):
    """Referral relationship between a referred user and their IB."""

    __tablename__ = "referral_edges"
    __table_args__ = (
        CheckConstraint(
            "child_user_id <> beneficiary_user_id",
            name="check_referral_edge_not_self",
        ),
        # At most one ACTIVE edge per child
        Index(
            "uq_referral_edges_active_child",
            "child_user_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
        Index("idx_referral_edges_beneficiary", "beneficiary_user_id"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    child_user_id: Mapped[int] = mapped_column(
        Integer, nullable=False, index=True
    )
    beneficiary_user_id: Mapped[int] = mapped_column(
        Integer, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=ReferralEdgeStatus.ACTIVE, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ReferralEdge(child={self.child_user_id}, "
            f"beneficiary={self.beneficiary_user_id}, status={self.status})>"
        )
