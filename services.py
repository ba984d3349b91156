from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from aggregation import (
    BudgetUtilization,
    CategoryMeta,
    ExpenseRecord,
    Stats,
    budget_utilization,
    compute_stats,
    filter_expenses,
    matches_search,
    summarize,
    trend_months,
)
from identity import Identity
from models import Budget, BudgetPeriod, Category, Expense, User
from money import to_cents
from periods import Period, local_today, month_end, parse_period, resolve_period
from schemas import BudgetIn, CategoryIn, ExpenseIn, ExpenseUpdate


logger = logging.getLogger(__name__)


class NotFoundError(ValueError):
    pass


def _expense_amount_cents(amount: Union[int, float, str]) -> int:
    cents = to_cents(amount)
    if cents <= 0:
        raise ValueError("Amount must be greater than 0")
    return cents


@dataclass
class ExpenseFilters:
    search: Optional[str] = None
    category_id: Optional[int] = None


class UserService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _by_external_id(self, external_id: str) -> Optional[User]:
        return self.session.scalar(select(User).where(User.external_id == external_id))

    def resolve_local_user(self, identity: Identity) -> User:
        """Find-or-create the local user for an external identity.

        Safe to call on every request: repeated calls return the same row and
        only write when the provider reports a changed profile.
        """
        user = self._by_external_id(identity.external_id)
        if user is None:
            user = User(
                external_id=identity.external_id,
                email=identity.email,
                name=identity.name,
                image_url=identity.image_url,
            )
            self.session.add(user)
            try:
                self.session.commit()
            except IntegrityError:
                # Another request created the same identity first.
                self.session.rollback()
                user = self._by_external_id(identity.external_id)
                if user is None:
                    raise
                return user
            self.session.refresh(user)
            logger.info(f"user_created: user_id={user.id}")
            return user

        changed = False
        for field in ("email", "name", "image_url"):
            value = getattr(identity, field)
            if value and getattr(user, field) != value:
                setattr(user, field, value)
                changed = True
        if changed:
            self.session.commit()
        return user


class CategoryService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def _visible(self):
        return or_(Category.is_default.is_(True), Category.user_id == self.user_id)

    def list_visible(self) -> list[Category]:
        stmt = select(Category).where(self._visible()).order_by(Category.name, Category.id)
        return self.session.scalars(stmt).all()

    def get_visible(self, category_id: int) -> Category:
        category = self.session.scalar(
            select(Category).where(Category.id == category_id, self._visible())
        )
        if not category:
            raise NotFoundError("Category not found")
        return category

    def meta_by_id(self) -> dict[int, CategoryMeta]:
        return {c.id: CategoryMeta.from_model(c) for c in self.list_visible()}

    def create(self, data: CategoryIn) -> Category:
        category = Category(
            user_id=self.user_id,
            name=data.name,
            icon=data.icon,
            color=data.color,
            is_default=False,
        )
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        logger.info(
            f"category_created: user_id={self.user_id} category_id={category.id}"
        )
        return category


class ExpenseService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id
        self.categories = CategoryService(session, user_id)

    def _owned(self):
        return (
            select(Expense)
            .options(joinedload(Expense.category))
            .where(Expense.user_id == self.user_id)
        )

    def _category_for(self, category_id: int) -> Category:
        # A bad reference in the payload is a validation failure, not a missing row.
        try:
            return self.categories.get_visible(category_id)
        except NotFoundError:
            raise ValueError("Invalid category") from None

    def create(self, data: ExpenseIn, *, today: Optional[date] = None) -> Expense:
        amount_cents = _expense_amount_cents(data.amount)
        category = self._category_for(data.category_id)
        expense = Expense(
            user_id=self.user_id,
            category_id=category.id,
            title=data.title,
            amount_cents=amount_cents,
            date=data.date or today or local_today(),
            description=data.description or None,
        )
        self.session.add(expense)
        self.session.commit()
        self.session.refresh(expense)
        logger.info(f"expense_created: user_id={self.user_id} expense_id={expense.id}")
        return expense

    def get(self, expense_id: int) -> Expense:
        expense = self.session.scalar(self._owned().where(Expense.id == expense_id))
        if not expense:
            raise NotFoundError("Expense not found")
        return expense

    def update(self, expense_id: int, data: ExpenseUpdate) -> Expense:
        expense = self.get(expense_id)
        fields = data.model_fields_set

        for required in ("title", "amount", "category_id", "date"):
            if required in fields and getattr(data, required) is None:
                raise ValueError(f"{required} cannot be null")

        amount_cents = (
            _expense_amount_cents(data.amount) if "amount" in fields else None
        )
        category = None
        if "category_id" in fields and data.category_id != expense.category_id:
            category = self._category_for(data.category_id)

        if "title" in fields:
            expense.title = data.title
        if amount_cents is not None:
            expense.amount_cents = amount_cents
        if category is not None:
            expense.category = category
        if "date" in fields:
            expense.date = data.date
        if "description" in fields:
            expense.description = data.description or None

        self.session.commit()
        self.session.refresh(expense)
        logger.info(f"expense_updated: user_id={self.user_id} expense_id={expense.id}")
        return expense

    def delete(self, expense_id: int) -> None:
        expense = self.session.scalar(
            select(Expense).where(
                Expense.id == expense_id, Expense.user_id == self.user_id
            )
        )
        if not expense:
            raise NotFoundError("Expense not found")
        self.session.delete(expense)
        self.session.commit()
        logger.info(f"expense_deleted: user_id={self.user_id} expense_id={expense_id}")

    def list(
        self, period: Period, filters: Optional[ExpenseFilters] = None
    ) -> list[Expense]:
        filters = filters or ExpenseFilters()
        stmt = (
            self._owned()
            .where(Expense.date.between(period.start, period.end))
            .order_by(Expense.date.desc(), Expense.id.desc())
        )
        if filters.category_id is not None:
            stmt = stmt.where(Expense.category_id == filters.category_id)
        expenses = self.session.scalars(stmt).all()
        if not filters.search:
            return list(expenses)
        return [
            e
            for e in expenses
            if matches_search(ExpenseRecord.from_model(e), filters.search)
        ]

    def records_between(self, start: date, end: date) -> list[ExpenseRecord]:
        stmt = (
            self._owned()
            .where(Expense.date.between(start, end))
            .order_by(Expense.date.asc(), Expense.id.asc())
        )
        return [ExpenseRecord.from_model(e) for e in self.session.scalars(stmt)]


class BudgetService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def get(self, period: Union[str, BudgetPeriod, None]) -> Optional[Budget]:
        kind = parse_period(period)
        return self.session.scalar(
            select(Budget).where(Budget.user_id == self.user_id, Budget.period == kind)
        )

    def upsert(self, data: BudgetIn) -> Budget:
        amount_cents = to_cents(data.amount)
        if amount_cents < 0:
            raise ValueError("Budget amount cannot be negative")

        existing = self.get(data.period)
        if existing:
            existing.amount_cents = amount_cents
            self.session.commit()
            self.session.refresh(existing)
            logger.info(
                f"budget_updated: user_id={self.user_id} period={data.period.value}"
            )
            return existing

        budget = Budget(
            user_id=self.user_id, period=data.period, amount_cents=amount_cents
        )
        self.session.add(budget)
        self.session.commit()
        self.session.refresh(budget)
        logger.info(f"budget_created: user_id={self.user_id} period={data.period.value}")
        return budget

    def utilization(
        self,
        period: Union[str, BudgetPeriod, None],
        *,
        today: Optional[date] = None,
    ) -> tuple[Period, BudgetUtilization]:
        resolved = resolve_period(period, today=today)
        budget = self.get(resolved.slug)
        records = ExpenseService(self.session, self.user_id).records_between(
            resolved.start, resolved.end
        )
        spent = summarize(filter_expenses(records, resolved)).total_cents
        return resolved, budget_utilization(
            spent, budget.amount_cents if budget else 0
        )


class StatsService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def stats(
        self,
        period: Union[str, BudgetPeriod, None],
        *,
        today: Optional[date] = None,
        search: Optional[str] = None,
    ) -> Stats:
        today = today or local_today()
        resolved = resolve_period(period, today=today)
        window_start = min(resolved.start, trend_months(today)[0])
        window_end = max(resolved.end, month_end(today))
        records = ExpenseService(self.session, self.user_id).records_between(
            window_start, window_end
        )
        categories = CategoryService(self.session, self.user_id).meta_by_id()
        return compute_stats(records, resolved, categories, today, search=search)
