"""
Route table checks. One handler per (method, path); duplicates fail at startup.

Routers are included through `include_router` so their routes are recorded
with the prefix they were mounted at. `app.routes` alone is not enough:
depending on the FastAPI version an included router shows up there either
as copied `APIRoute`s or as a single wrapper entry.
"""
from collections import defaultdict
from collections.abc import Iterator

from fastapi import APIRouter, FastAPI
from fastapi.routing import APIRoute


class DuplicateRouteError(RuntimeError):
    """Two handlers were registered for the same method and path."""

    pass


def _included_routers(app: FastAPI) -> list[tuple[APIRouter, str]]:
    if not hasattr(app.state, "included_routers"):
        app.state.included_routers = []
    return app.state.included_routers


def _router_routes(router: APIRouter, prefix: str) -> Iterator[tuple[str, str, APIRoute]]:
    for route in router.routes:
        if not isinstance(route, APIRoute):
            continue
        for method in route.methods:
            yield method, prefix + route.path, route


def include_router(app: FastAPI, router: APIRouter, *, prefix: str = "", **kwargs) -> None:
    """Include `router` in `app` and record its routes for `route_table`."""
    _included_routers(app).append((router, prefix))
    app.include_router(router, prefix=prefix, **kwargs)


def route_table(app: FastAPI) -> dict[tuple[str, str], list[str]]:
    """Map (method, path) -> names of the endpoints registered for it."""
    table: dict[tuple[str, str], list[str]] = defaultdict(list)
    recorded = set()
    for router, prefix in _included_routers(app):
        for method, path, route in _router_routes(router, prefix):
            table[(method, path)].append(route.name)
            recorded.add(route.endpoint)

    for route in app.routes:
        # Copies of recorded router routes are skipped; only app-level ones remain
        if not isinstance(route, APIRoute) or route.endpoint in recorded:
            continue
        for method in route.methods:
            table[(method, route.path)].append(route.name)
    return dict(table)


def ensure_unique_routes(app: FastAPI) -> None:
    duplicates = {key: names for key, names in route_table(app).items() if len(names) > 1}
    if duplicates:
        listing = ", ".join(
            f"{method} {path} -> {names}" for (method, path), names in sorted(duplicates.items())
        )
        raise DuplicateRouteError(f"Conflicting route definitions: {listing}")
