import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from database import build_session_maker
from main import app
from routers import rate_limit
from services.report_store import InMemoryReportStore, SqlReportStore


@pytest.fixture(autouse=True)
def reset_local_rate_limit_counters():
    """Keep in-memory rate-limit state isolated between tests."""
    previous = getattr(app.state, "disable_rate_limits", False)
    app.state.disable_rate_limits = True
    rate_limit.local_quota.clear()
    yield
    rate_limit.local_quota.clear()
    app.state.disable_rate_limits = previous


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    db_path = tmp_path / "shared_reports.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    store = SqlReportStore(build_session_maker(engine), engine=engine, auto_create_schema=True)
    await store.initialize()
    yield store
    await store.close()


@pytest_asyncio.fixture(params=["memory", "sql"])
async def report_store(request, tmp_path):
    """Run the same test against both store backends."""
    if request.param == "memory":
        yield InMemoryReportStore()
        return
    db_path = tmp_path / "shared_reports_param.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    store = SqlReportStore(build_session_maker(engine), engine=engine, auto_create_schema=True)
    await store.initialize()
    yield store
    await store.close()
