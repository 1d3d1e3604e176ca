"""Validated input models for user-submitted forms.

A ``pydantic.ValidationError`` raised here means the write is never sent
to the database.
"""

from __future__ import annotations

import datetime as dt
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

TransactionType = Literal['expense', 'income']
RecurringFrequency = Literal['daily', 'weekly', 'monthly', 'yearly']
RecurringStatus = Literal['active', 'paused']

MONTH_PATTERN = r'^\d{4}-\d{2}$'


class TransactionCreate(BaseModel):
    amount: float = Field(gt=0)
    type: TransactionType = 'expense'
    category_id: Optional[str] = None
    date: dt.date
    notes: Optional[str] = None


class TransactionUpdate(BaseModel):
    amount: Optional[float] = Field(default=None, gt=0)
    type: Optional[TransactionType] = None
    category_id: Optional[str] = None
    date: Optional[dt.date] = None
    notes: Optional[str] = None


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=30)
    icon: str = Field(default='more-horizontal', min_length=1)
    color: str = Field(default='#6366f1', min_length=1)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=30)
    icon: Optional[str] = None
    color: Optional[str] = None
    order: Optional[int] = None


class BudgetAllocationInput(BaseModel):
    category_id: str = Field(min_length=1)
    amount: float = Field(ge=0)


class BudgetCreate(BaseModel):
    month: str = Field(pattern=MONTH_PATTERN)
    total_amount: float = Field(gt=0)
    allocations: List[BudgetAllocationInput] = Field(default_factory=list)


class BudgetUpdate(BaseModel):
    total_amount: Optional[float] = Field(default=None, gt=0)
    allocations: Optional[List[BudgetAllocationInput]] = None


class GoalCreate(BaseModel):
    name: str = Field(min_length=1)
    target_amount: float = Field(gt=0)
    current_amount: float = 0.0
    icon: str = 'Target'
    color: str = '#98EF5A'
    deadline: Optional[dt.date] = None


class GoalUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    target_amount: Optional[float] = Field(default=None, gt=0)
    current_amount: Optional[float] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    deadline: Optional[dt.date] = None


class RecurringCreate(BaseModel):
    name: str = Field(min_length=1)
    amount: float = Field(gt=0)
    type: TransactionType = 'expense'
    category_id: Optional[str] = None
    frequency: RecurringFrequency = 'monthly'
    next_date: dt.date
    status: RecurringStatus = 'active'


class RecurringUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    amount: Optional[float] = Field(default=None, gt=0)
    type: Optional[TransactionType] = None
    category_id: Optional[str] = None
    frequency: Optional[RecurringFrequency] = None
    next_date: Optional[dt.date] = None
    status: Optional[RecurringStatus] = None
