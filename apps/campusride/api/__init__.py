"""API router registration helpers.

Routers are imported lazily inside `register_routes` so importing a submodule
(e.g. in a unit test) does not pull in every endpoint.
"""

from fastapi import FastAPI


def register_routes(app: FastAPI) -> None:
    """Attach all API routers (lazy imports)."""
    from campusride.api.realtime import router as realtime_router
    from campusride.api.rides import router as rides_router
    from campusride.api.system import router as system_router

    routers = [
        system_router,
        rides_router,
        realtime_router,
    ]
    for router in routers:
        app.include_router(router)
