from datetime import date, datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.pool import StaticPool

from dutyroster.config import Settings
from dutyroster.database import create_engine, create_session_factory
from dutyroster.main import create_app
from dutyroster.models import Base, Employee, AppRole
from dutyroster.schemas.planning import PlanningInputV1

JWT_SECRET = "test-secret"


class FakeClock:
    """Управляемые часы для тестов"""

    def __init__(self, start: datetime = datetime(2025, 1, 15, 8, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite+aiosqlite://",
        jwt_secret_key=JWT_SECRET,
        log_level="DEBUG",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def engine(settings):
    engine = create_engine(
        settings,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(settings, session_factory):
    app = create_app(settings)
    # lifespan не запускается через ASGITransport, поэтому state задаётся вручную
    app.state.session_factory = session_factory
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def make_token(employee_id: str, token_type: str = "access", secret: str = JWT_SECRET) -> str:
    payload = {
        "sub": employee_id,
        "type": token_type,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(employee_id: str) -> dict:
    return {"Authorization": f"Bearer {make_token(employee_id)}"}


@pytest.fixture
async def planner(session_factory):
    async with session_factory() as session:
        employee = Employee(
            id="planner-1",
            first_name="Petra",
            last_name="Planer",
            role="Primaria",
            app_role=AppRole.PLANNER,
            takes_shifts=False,
        )
        session.add(employee)
        await session.commit()
    return employee


# ================= DOCUMENT HELPERS =================

def slot_doc(slot_id: str, day: date, role_id: str = "gyn") -> dict:
    return {
        "id": slot_id,
        "date": day.isoformat(),
        "roleId": role_id,
        "required": 1,
        "isoWeek": day.isocalendar()[1],
        "isWeekend": day.weekday() >= 5,
    }


def employee_doc(
    employee_id: str,
    role_ids: list[str] | None = None,
    limits: dict | None = None,
    ban_dates: list[str] | None = None,
    ban_weekdays: list[int] | None = None,
) -> dict:
    return {
        "id": employee_id,
        "name": f"Employee {employee_id}",
        "group": "OA",
        "capabilities": {"canRoleIds": role_ids if role_ids is not None else ["gyn"]},
        "constraints": {
            "limits": limits or {},
            "hard": {
                "banDates": ban_dates or [],
                "banWeekdays": ban_weekdays or [],
            },
        },
    }


def planning_input(slots: list[dict], employees: list[dict], year: int = 2025, month: int = 1) -> PlanningInputV1:
    return PlanningInputV1.model_validate({
        "version": "v1",
        "meta": {
            "timezone": "Europe/Vienna",
            "createdAt": "2025-01-01T00:00:00",
            "planningKind": "MONTHLY_DUTY",
        },
        "period": {
            "startDate": date(year, month, 1).isoformat(),
            "endDate": date(year, month, 28).isoformat(),
            "year": year,
            "month": month,
        },
        "roles": [{"id": "gyn", "label": "Gynäkologie"}, {"id": "overduty", "label": "Überdienst"}],
        "slots": slots,
        "employees": employees,
        "rules": {},
    })
