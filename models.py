from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Float, DateTime, Text
from sqlalchemy.orm import relationship
from database import Base
import datetime
import secrets


def new_id():
    return secrets.token_hex(12)  # 24-char opaque id


def utcnow():
    return datetime.datetime.now(datetime.timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(String(24), primary_key=True, index=True, default=new_id)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)  # stored lowercased
    password = Column(String, nullable=False)  # salted hash
    role = Column(String, default="citizen", index=True)  # citizen, volunteer, admin

    total_reports = Column(Integer, default=0, nullable=False)
    last_report_date = Column(DateTime(timezone=True), nullable=True)
    claim_version = Column(Integer, default=0, nullable=False)  # bumped by every reward claim
    created_at = Column(DateTime(timezone=True), default=utcnow)

    reports = relationship("Report", back_populates="owner", foreign_keys="Report.user_id")
    claims = relationship("RewardClaim", back_populates="user")


class Report(Base):
    __tablename__ = "reports"

    id = Column(String(24), primary_key=True, index=True, default=new_id)
    user_id = Column(String(24), ForeignKey("users.id"), index=True, nullable=False)
    user_name = Column(String, nullable=True)
    user_email = Column(String, nullable=True)

    category = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=False)
    severity = Column(String, index=True, default="Minor")  # Minor, Major, Critical
    is_urgent = Column(Boolean, default=False)

    # Location
    location = Column(String, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)

    image = Column(Text, nullable=True)  # base64 payload

    status = Column(String, index=True, default="Pending")  # Pending, In Progress, Resolved, Rejected
    assigned_to = Column(String(24), ForeignKey("users.id"), index=True, nullable=True)
    version = Column(Integer, default=1, nullable=False)  # bumped on every status write

    # Resolution
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    resolved_by = Column(String(24), ForeignKey("users.id"), nullable=True)
    resolution_notes = Column(Text, nullable=True)
    resolved_image = Column(Text, nullable=True)

    upvotes = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    owner = relationship("User", back_populates="reports", foreign_keys=[user_id])
    upvote_rows = relationship("ReportUpvote", cascade="all, delete-orphan", lazy="selectin")
    comments = relationship(
        "ReportComment",
        cascade="all, delete-orphan",
        order_by="ReportComment.created_at",
        lazy="selectin",
    )

    @property
    def coordinates(self):
        return {"latitude": self.latitude, "longitude": self.longitude}

    @property
    def upvoted_by(self):
        return [row.user_id for row in self.upvote_rows]


class ReportUpvote(Base):
    __tablename__ = "report_upvotes"

    # Composite key keeps upvotedBy free of duplicates
    report_id = Column(String(24), ForeignKey("reports.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(24), ForeignKey("users.id"), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class ReportComment(Base):
    __tablename__ = "report_comments"

    id = Column(String(24), primary_key=True, default=new_id)
    report_id = Column(String(24), ForeignKey("reports.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(String(24), ForeignKey("users.id"), nullable=False)
    user_name = Column(String, nullable=True)
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class RewardClaim(Base):
    __tablename__ = "reward_claims"

    id = Column(String(24), primary_key=True, default=new_id)
    user_id = Column(String(24), ForeignKey("users.id"), index=True, nullable=False)
    reward_id = Column(String, nullable=False)

    # Copied from the catalog at claim time
    title = Column(String, nullable=False)
    cost = Column(Integer, nullable=False)
    sponsor = Column(String, nullable=True)

    status = Column(String, default="pending")  # pending, delivered
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    user = relationship("User", back_populates="claims")
