from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from hris.models.performance import FormKind, FormStatus, ItemCategory


class FormCreate(BaseModel):
    cycle_id: int
    # IPCR only; defaults to the calling user
    subject_id: Optional[int] = None
    immediate_supervisor_id: Optional[int] = None
    # DPCR only; defaults to the calling user's division
    org_unit: Optional[str] = None


class LineItemInput(BaseModel):
    """One committed output. Omit `id` to create, include it to update."""
    id: Optional[int] = None
    category: ItemCategory
    sort_order: int = 0
    description: Optional[str] = None
    success_indicator: Optional[str] = None
    accountable_party: Optional[str] = None
    allotted_budget: Optional[Decimal] = None
    accomplishment: Optional[str] = None
    remarks: Optional[str] = None


class SaveLineItemsRequest(BaseModel):
    items: List[LineItemInput] = Field(default_factory=list)


class ReviewRequest(BaseModel):
    comments: Optional[str] = None


class ItemRating(BaseModel):
    item_id: int
    rating_quantity: Decimal
    rating_efficiency: Decimal
    rating_timeliness: Decimal


class RatingRequest(BaseModel):
    """Body of finalize (IPCR) and approve (DPCR/OPCR)."""
    ratings: List[ItemRating] = Field(default_factory=list)
    remarks: Optional[str] = None


class ReturnRequest(BaseModel):
    remarks: Optional[str] = None


class LineItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    form_id: int
    category: ItemCategory
    sort_order: int
    description: Optional[str] = None
    success_indicator: Optional[str] = None
    accountable_party: Optional[str] = None
    allotted_budget: Optional[Decimal] = None
    accomplishment: Optional[str] = None
    remarks: Optional[str] = None
    rating_quantity: Optional[Decimal] = None
    rating_efficiency: Optional[Decimal] = None
    rating_timeliness: Optional[Decimal] = None
    rating_average: Optional[Decimal] = None


class FormResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: FormKind
    cycle_id: int
    subject_id: Optional[int] = None
    org_unit: Optional[str] = None
    prepared_by_id: int
    immediate_supervisor_id: Optional[int] = None
    status: FormStatus
    reviewer_id: Optional[int] = None
    approver_id: Optional[int] = None
    final_average_rating: Optional[Decimal] = None
    adjectival_rating: Optional[str] = None
    review_comments: Optional[str] = None
    final_remarks: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    finalized_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None


class FormSummary(FormResponse):
    item_count: int = 0


class FormDetail(BaseModel):
    form: FormResponse
    items: List[LineItemResponse]


class CreatedForm(BaseModel):
    id: int
