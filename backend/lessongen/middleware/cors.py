"""Permissive cross-origin headers on every response.

Pre-flight OPTIONS requests are answered here with 200 and an empty body, so
they never reach a route.
"""

from fastapi import Request, Response

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Client-Info, Apikey",
}


def preflight_response() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)


async def permissive_cors(request: Request, call_next):
    if request.method == "OPTIONS":
        return preflight_response()
    response = await call_next(request)
    for key, value in CORS_HEADERS.items():
        response.headers.setdefault(key, value)
    return response
