"""Route table uniqueness."""
import pytest
from fastapi import APIRouter, FastAPI

from devconnector.api.registry import (
    DuplicateRouteError,
    ensure_unique_routes,
    include_router,
    route_table,
)
from devconnector.main import create_application


def test_application_route_table_has_single_delete_on_profile():
    app = create_application()
    table = route_table(app)
    assert table[("DELETE", "/api/profile")] == ["delete_my_account"]
    assert table[("DELETE", "/api/profile/experience/{exp_id}")] == ["delete_experience"]
    assert ("GET", "/api/profile") in table
    assert ("POST", "/api/users") in table
    assert ("GET", "/health") in table


def test_duplicate_method_and_path_is_rejected():
    router = APIRouter()

    @router.delete("")
    async def delete_account():
        return {}

    @router.delete("")
    async def list_everything():
        return []

    app = FastAPI()
    include_router(app, router, prefix="/api/profile")
    with pytest.raises(DuplicateRouteError) as exc:
        ensure_unique_routes(app)
    assert "DELETE /api/profile" in str(exc.value)


def test_duplicate_across_routers_sharing_a_prefix_is_rejected():
    accounts = APIRouter()
    profiles = APIRouter()

    @accounts.delete("")
    async def delete_account():
        return {}

    @profiles.delete("")
    async def delete_profile():
        return {}

    app = FastAPI()
    include_router(app, accounts, prefix="/api/profile")
    include_router(app, profiles, prefix="/api/profile")
    with pytest.raises(DuplicateRouteError) as exc:
        ensure_unique_routes(app)
    assert "delete_account" in str(exc.value)
    assert "delete_profile" in str(exc.value)


def test_app_route_clashing_with_router_route_is_rejected():
    router = APIRouter()

    @router.get("")
    async def list_profiles():
        return []

    app = FastAPI()
    include_router(app, router, prefix="/api/profile")

    @app.get("/api/profile")
    async def shadow():
        return []

    with pytest.raises(DuplicateRouteError):
        ensure_unique_routes(app)


def test_same_path_with_different_methods_is_allowed():
    router = APIRouter()

    @router.get("")
    async def read():
        return {}

    @router.delete("")
    async def remove():
        return {}

    app = FastAPI()
    include_router(app, router, prefix="/api/profile")
    ensure_unique_routes(app)
    assert route_table(app) == {
        ("GET", "/api/profile"): ["read"],
        ("DELETE", "/api/profile"): ["remove"],
    }
