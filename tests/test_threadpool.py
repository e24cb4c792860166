"""
tests/test_threadpool.py: supabase-py is blocking, so no handler may call it on the event loop
"""
import inspect

from fastapi.routing import APIRoute

import app.api.v1.analytics_router as analytics_router
from app.main import app

PROFILE_ID = "11111111-1111-1111-1111-111111111111"

# Async handlers that hand their blocking work to the threadpool themselves
ASYNC_HANDLERS = {"track_event", "enhance_profile_text"}


def _api_routes():
    return [route for route in app.routes if isinstance(route, APIRoute) and route.path.startswith("/api/v1")]


def test_database_handlers_are_sync():
    routes = _api_routes()
    assert routes

    async_handlers = {route.endpoint.__name__ for route in routes if inspect.iscoroutinefunction(route.endpoint)}

    assert async_handlers <= ASYNC_HANDLERS


def test_core_handlers_are_sync():
    handlers = {route.endpoint.__name__: route.endpoint for route in _api_routes()}

    for name in ("recommend_profile", "check_handle", "send_message", "list_messages", "update_message"):
        assert name in handlers
        assert not inspect.iscoroutinefunction(handlers[name])


def test_track_event_inserts_off_the_event_loop(client, fake_db, monkeypatch):
    offloaded = []
    real_run_in_threadpool = analytics_router.run_in_threadpool

    async def recording_run_in_threadpool(func, *args, **kwargs):
        offloaded.append(func.__name__)
        return await real_run_in_threadpool(func, *args, **kwargs)

    monkeypatch.setattr(analytics_router, "run_in_threadpool", recording_run_in_threadpool)

    response = client.post("/api/v1/analytics/track", json={"profileId": PROFILE_ID, "eventType": "profile_view"})

    assert response.status_code == 200
    assert offloaded == ["_insert_event"]
    assert len(fake_db.rows("analytics_events")) == 1
