import pytest
from tests.factories import bearer, make_token


@pytest.fixture
def admin_headers() -> dict:
    return bearer(make_token(sub="admin-1", role="admin"))


@pytest.fixture
def customer_headers() -> dict:
    return bearer(make_token(sub="user-42"))


@pytest.fixture
def persist(db_session):
    """Add model instances and commit them; returns them for chaining."""

    async def _persist(*instances):
        db_session.add_all(instances)
        await db_session.commit()
        return instances[0] if len(instances) == 1 else instances

    return _persist
