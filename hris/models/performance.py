"""
Performance Commitment and Review (IPCR / DPCR / OPCR) models.

A form is the header record for one subject (or division, or the whole office)
in one SPMS cycle; its line items are the committed outputs that get rated.
"""
import enum
from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey, Enum, Index, text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from hris.database import Base


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class FormKind(str, enum.Enum):
    INDIVIDUAL = "ipcr"
    DEPARTMENT = "dpcr"
    OFFICE = "opcr"


class FormStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    REVIEWED = "reviewed"
    FINALIZED = "finalized"
    RETURNED = "returned"
    APPROVED = "approved"


class ItemCategory(str, enum.Enum):
    STRATEGIC_PRIORITY = "Strategic Priority"
    CORE_FUNCTION = "Core Function"
    SUPPORT_FUNCTION = "Support Function"


TERMINAL_STATUSES = frozenset({FormStatus.FINALIZED, FormStatus.APPROVED})

# Display order of line items within a form
CATEGORY_RANK = {
    ItemCategory.STRATEGIC_PRIORITY: 1,
    ItemCategory.CORE_FUNCTION: 2,
    ItemCategory.SUPPORT_FUNCTION: 3,
}

ALLOWED_CATEGORIES = {
    FormKind.INDIVIDUAL: frozenset({ItemCategory.CORE_FUNCTION, ItemCategory.SUPPORT_FUNCTION}),
    FormKind.DEPARTMENT: frozenset(ItemCategory),
    FormKind.OFFICE: frozenset(ItemCategory),
}


class PerformanceForm(Base):
    __tablename__ = "performance_forms"

    id = Column(Integer, primary_key=True, index=True)
    kind = Column(Enum(FormKind, values_callable=_enum_values, name="form_kind"), nullable=False, index=True)
    cycle_id = Column(Integer, ForeignKey("spms_cycles.id"), nullable=False, index=True)

    # Individual forms only; department/office forms have an implicit subject
    subject_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    # Division the form belongs to (null for the office-wide form)
    org_unit = Column(String, nullable=True, index=True)

    prepared_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    immediate_supervisor_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    status = Column(
        Enum(FormStatus, values_callable=_enum_values, name="form_status"),
        default=FormStatus.DRAFT,
        nullable=False,
        index=True,
    )

    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approver_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    final_average_rating = Column(Numeric(6, 3), nullable=True)
    adjectival_rating = Column(String, nullable=True)
    review_comments = Column(Text, nullable=True)
    final_remarks = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    finalized_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    cycle = relationship("SPMSCycle")
    subject = relationship("User", foreign_keys=[subject_id])
    prepared_by = relationship("User", foreign_keys=[prepared_by_id])
    items = relationship(
        "PerformanceLineItem",
        back_populates="form",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        # One form per key and kind: (subject, cycle), (division, cycle), (cycle)
        Index("uq_performance_forms_ipcr", "cycle_id", "subject_id", unique=True,
              sqlite_where=text("kind = 'ipcr'"), postgresql_where=text("kind = 'ipcr'")),
        Index("uq_performance_forms_dpcr", "cycle_id", "org_unit", unique=True,
              sqlite_where=text("kind = 'dpcr'"), postgresql_where=text("kind = 'dpcr'")),
        Index("uq_performance_forms_opcr", "cycle_id", unique=True,
              sqlite_where=text("kind = 'opcr'"), postgresql_where=text("kind = 'opcr'")),
    )

    def __repr__(self):
        return f"<PerformanceForm {self.kind.value}#{self.id} {self.status.value}>"


class PerformanceLineItem(Base):
    __tablename__ = "performance_line_items"

    id = Column(Integer, primary_key=True, index=True)
    form_id = Column(Integer, ForeignKey("performance_forms.id", ondelete="CASCADE"), nullable=False, index=True)

    category = Column(Enum(ItemCategory, values_callable=_enum_values, name="item_category"), nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    description = Column(Text, nullable=True)  # major final output
    success_indicator = Column(Text, nullable=True)
    accountable_party = Column(String, nullable=True)
    allotted_budget = Column(Numeric(14, 2), nullable=True)
    accomplishment = Column(Text, nullable=True)
    remarks = Column(Text, nullable=True)

    rating_quantity = Column(Numeric(4, 2), nullable=True)
    rating_efficiency = Column(Numeric(4, 2), nullable=True)
    rating_timeliness = Column(Numeric(4, 2), nullable=True)
    # Written only by the approval/finalize transition
    rating_average = Column(Numeric(4, 2), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    form = relationship("PerformanceForm", back_populates="items")

    @property
    def display_key(self):
        return (CATEGORY_RANK.get(self.category, 99), self.sort_order)
