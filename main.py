import logging
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError
from sqlalchemy.orm import Session

from config import get_settings
from csrf import generate_csrf_token, validate_csrf_token
from database import get_db
from identity import identity_from_authorization, read_identity_token
from models import User
from money import cents_to_units, format_currency
from periods import Period, resolve_period
from schemas import (
    BudgetIn,
    BudgetOut,
    BudgetStatusOut,
    CategoryIn,
    CategoryOut,
    ExpenseIn,
    ExpenseOut,
    ExpenseUpdate,
    MessageOut,
    StatsOut,
)
from services import (
    BudgetService,
    CategoryService,
    ExpenseFilters,
    ExpenseService,
    NotFoundError,
    StatsService,
    UserService,
)
from views import DashboardState

BASE_DIR = Path(__file__).resolve().parent
IDENTITY_COOKIE = "identity_token"

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)


def _load_app_version() -> str:
    try:
        import tomllib
    except Exception:
        return "unknown"
    try:
        with open(BASE_DIR / "pyproject.toml", "rb") as f:
            data = tomllib.load(f)
        return str(data.get("project", {}).get("version", "unknown"))
    except Exception:
        return "unknown"


APP_VERSION = _load_app_version()

app = FastAPI(title="Finance Tracker", version=APP_VERSION)
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
templates.env.filters["currency"] = format_currency
templates.env.globals["csrf_token"] = generate_csrf_token


def format_validation_errors(errors) -> str:
    messages = []
    for error in errors:
        loc = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        msg = error.get("msg", "Invalid value")
        messages.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(messages) or "Invalid request"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400, content={"detail": format_validation_errors(exc.errors())}
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"unhandled_error: method={request.method} path={request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> User:
    identity = identity_from_authorization(authorization)
    if identity is None and not authorization:
        identity = read_identity_token(request.cookies.get(IDENTITY_COOKIE, ""))
    if identity is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return UserService(db).resolve_local_user(identity)


def period_from_request(request: Request) -> Period:
    try:
        return resolve_period(request.query_params.get("period"))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def filters_from_request(request: Request) -> ExpenseFilters:
    category_param = (request.query_params.get("categoryId") or "").strip()
    category_id = None
    if category_param:
        try:
            category_id = int(category_param)
        except ValueError as exc:
            raise HTTPException(
                status_code=400, detail="categoryId must be an integer"
            ) from exc
    search = (request.query_params.get("search") or "").strip() or None
    return ExpenseFilters(search=search, category_id=category_id)


@app.get("/categories", response_model=list[CategoryOut])
def list_categories(
    user: User = Depends(current_user), db: Session = Depends(get_db)
):
    return [
        CategoryOut.model_validate(c)
        for c in CategoryService(db, user.id).list_visible()
    ]


@app.post("/categories", response_model=CategoryOut, status_code=201)
def create_category(
    data: CategoryIn,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    category = CategoryService(db, user.id).create(data)
    return CategoryOut.model_validate(category)


@app.get("/expenses", response_model=list[ExpenseOut])
def list_expenses(
    request: Request,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    period = period_from_request(request)
    filters = filters_from_request(request)
    items = ExpenseService(db, user.id).list(period, filters)
    return [ExpenseOut.from_model(e) for e in items]


@app.post("/expenses", response_model=ExpenseOut, status_code=201)
def create_expense(
    data: ExpenseIn,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    try:
        expense = ExpenseService(db, user.id).create(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ExpenseOut.from_model(expense)


@app.get("/expenses/{expense_id}", response_model=ExpenseOut)
def get_expense(
    expense_id: int,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    try:
        expense = ExpenseService(db, user.id).get(expense_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return ExpenseOut.from_model(expense)


@app.put("/expenses/{expense_id}", response_model=ExpenseOut)
def update_expense(
    expense_id: int,
    data: ExpenseUpdate,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    try:
        expense = ExpenseService(db, user.id).update(expense_id, data)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ExpenseOut.from_model(expense)


@app.delete("/expenses/{expense_id}", response_model=MessageOut)
def delete_expense(
    expense_id: int,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    try:
        ExpenseService(db, user.id).delete(expense_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return MessageOut(message="Expense deleted successfully")


@app.get("/budget", response_model=BudgetOut)
def get_budget(
    request: Request,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    period = period_from_request(request)
    budget = BudgetService(db, user.id).get(period.slug)
    if budget is None:
        return BudgetOut(amount=0, period=period.slug)
    return BudgetOut(
        id=budget.id,
        amount=cents_to_units(budget.amount_cents),
        period=budget.period,
        updated_at=budget.updated_at,
    )


@app.post("/budget", response_model=BudgetOut)
def set_budget(
    data: BudgetIn,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    try:
        budget = BudgetService(db, user.id).upsert(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return BudgetOut(
        id=budget.id,
        amount=cents_to_units(budget.amount_cents),
        period=budget.period,
        updated_at=budget.updated_at,
    )


@app.get("/budget/status", response_model=BudgetStatusOut)
def budget_status(
    request: Request,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    period = period_from_request(request)
    resolved, usage = BudgetService(db, user.id).utilization(period.slug)
    return BudgetStatusOut.build(resolved, usage)


@app.get("/stats", response_model=StatsOut)
def stats(
    request: Request,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    period = period_from_request(request)
    return StatsOut.build(StatsService(db, user.id).stats(period.slug))


def render(
    request: Request,
    template: str,
    context: dict[str, object],
    status_code: int = 200,
) -> HTMLResponse:
    return templates.TemplateResponse(
        request, template, context, status_code=status_code
    )


def dashboard_state(params) -> DashboardState:
    try:
        return DashboardState.from_query(params)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def render_dashboard(
    request: Request,
    db: Session,
    user: User,
    state: DashboardState,
    *,
    form_error: Optional[str] = None,
    form_values: Optional[dict[str, str]] = None,
    status_code: int = 200,
) -> HTMLResponse:
    stats_data = StatsService(db, user.id).stats(state.period, search=state.search)
    expenses = ExpenseService(db, user.id).list(
        stats_data.period, ExpenseFilters(search=state.search or None)
    )
    _, usage = BudgetService(db, user.id).utilization(state.period)
    categories = CategoryService(db, user.id).list_visible()
    return render(
        request,
        "dashboard.html",
        {
            "user": user,
            "state": state,
            "stats": stats_data,
            "usage": usage,
            "expenses": expenses,
            "recent": expenses[:5],
            "categories": categories,
            "form_error": form_error,
            "form_values": form_values or {},
            "app_version": APP_VERSION,
        },
        status_code=status_code,
    )


def redirect_to_dashboard(state: DashboardState) -> RedirectResponse:
    query = state.to_query()
    return RedirectResponse(url=f"/?{query}" if query else "/", status_code=303)


@app.get("/", response_class=HTMLResponse)
def dashboard(
    request: Request,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    return render_dashboard(request, db, user, dashboard_state(request.query_params))


@app.post("/dashboard/expenses")
async def quick_add_expense(
    request: Request,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    form = await request.form()
    if not validate_csrf_token(form.get("csrf_token"), user.id):
        raise HTTPException(status_code=400, detail="Invalid CSRF token")
    state = dashboard_state(form)

    values = {
        key: str(form.get(key) or "").strip()
        for key in ("title", "amount", "category_id", "date", "description")
    }
    try:
        data = ExpenseIn.model_validate(
            {
                "title": values["title"],
                "amount": values["amount"] or None,
                "categoryId": values["category_id"] or None,
                "date": values["date"] or None,
                "description": values["description"] or None,
            }
        )
        ExpenseService(db, user.id).create(data)
    except ValidationError as exc:
        return render_dashboard(
            request,
            db,
            user,
            state,
            form_error=format_validation_errors(exc.errors()),
            form_values=values,
            status_code=400,
        )
    except ValueError as exc:
        return render_dashboard(
            request,
            db,
            user,
            state,
            form_error=str(exc),
            form_values=values,
            status_code=400,
        )
    return redirect_to_dashboard(state)


@app.post("/dashboard/expenses/{expense_id}/delete")
async def quick_delete_expense(
    expense_id: int,
    request: Request,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    form = await request.form()
    if not validate_csrf_token(form.get("csrf_token"), user.id):
        raise HTTPException(status_code=400, detail="Invalid CSRF token")
    state = dashboard_state(form)
    try:
        ExpenseService(db, user.id).delete(expense_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return redirect_to_dashboard(state)


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
