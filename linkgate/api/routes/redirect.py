"""Short link resolution endpoint."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import RedirectResponse

from linkgate.api.dependencies import get_policy_evaluator
from linkgate.db.session import get_db
from linkgate.services.client import VisitRequest
from linkgate.services.policy import Disposition, PolicyEvaluator

router = APIRouter(tags=["redirect"])

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}


def client_ip(request: Request) -> Optional[str]:
    """Client address, preferring the edge proxy's view of it."""
    if "cf-connecting-ip" in request.headers:
        return request.headers["cf-connecting-ip"]
    if "x-forwarded-for" in request.headers:
        forwarded_ips = request.headers["x-forwarded-for"].split(",")
        if forwarded_ips and forwarded_ips[0].strip():
            return forwarded_ips[0].strip()
    return request.client.host if request.client else None


def build_visit_request(
    request: Request,
    code: str,
    password: Optional[str],
    t: Optional[str],
    s: Optional[str],
) -> VisitRequest:
    headers = request.headers
    return VisitRequest(
        host=headers.get("host", ""),
        code=code,
        password=password or None,
        ticket_timestamp=t or None,
        ticket_signature=s or None,
        ip=client_ip(request),
        user_agent=headers.get("user-agent"),
        referer=headers.get("referer"),
        country=headers.get("cf-ipcountry"),
        region=headers.get("cf-region"),
        city=headers.get("cf-ipcity"),
    )


def to_response(disposition: Disposition) -> Response:
    """Render a disposition as an uncacheable HTTP response."""
    if disposition.allowed:
        return RedirectResponse(
            url=disposition.location,
            status_code=disposition.status_code,
            headers=NO_STORE_HEADERS,
        )
    if disposition.html is not None:
        return HTMLResponse(disposition.html, status_code=disposition.status_code, headers=NO_STORE_HEADERS)
    if disposition.text is not None:
        return PlainTextResponse(disposition.text, status_code=disposition.status_code, headers=NO_STORE_HEADERS)
    return JSONResponse(disposition.payload, status_code=disposition.status_code, headers=NO_STORE_HEADERS)


@router.get("/{code}", response_class=Response)
async def resolve_short_link(
    request: Request,
    code: str,
    password: Optional[str] = Query(None),
    t: Optional[str] = Query(None, description="Interstitial ticket timestamp"),
    s: Optional[str] = Query(None, description="Interstitial ticket signature"),
    db: AsyncSession = Depends(get_db),
    evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
):
    """Redirect, challenge or reject the visitor; the visit is recorded after the response."""
    visit = build_visit_request(request, code, password, t, s)
    disposition = await evaluator.evaluate(db, visit)
    return to_response(disposition)
