"""
Endorsement self-service access endpoints.

POST   /api/endorsements/access/send-otp             — email a one-time code
POST   /api/endorsements/access/verify-otp           — exchange the code for a session cookie
GET    /api/endorsements/access/endorsement/{id}     — editable view (session required)
PATCH  /api/endorsements/access/endorsement/{id}     — edit (session required)
DELETE /api/endorsements/access/endorsement/{id}     — delete (session required)

send-otp answers ``{"success": true}`` whenever the input is well-formed:
throttled, unknown endorsement, wrong email and infrastructure failures
are indistinguishable from a real send.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse

from config import AppSettings
from dependencies import get_access_service, get_rate_limiter, get_settings
from errors import RateLimitError
from infrastructure.rate_limit.protocol import RateLimiter
from schemas.dto.requests.endorsement_access import (
    SendOtpRequest,
    UpdateEndorsementRequest,
    VerifyOtpRequest,
)
from schemas.dto.responses.common import ErrorResponse, SuccessResponse
from schemas.dto.responses.endorsement_access import (
    ManagedEndorsement,
    ManagedEndorsementResponse,
)
from schemas.models.challenge import RequestMeta
from services.endorsement_access import EndorsementAccessService
from shared.logging import get_logger, hash_ip
from shared.request_utils import get_client_ip, get_site_base_url, get_user_agent
from shared.validators import normalize_email

log = get_logger(__name__)

router = APIRouter(
    prefix="/api/endorsements/access",
    tags=["endorsement-access"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)

TOO_MANY_ATTEMPTS_MESSAGE = "Too many attempts. Please try again later."
TOO_MANY_REQUESTS_MESSAGE = "Too many requests. Please try again later."


def _ok() -> JSONResponse:
    return JSONResponse(status_code=200, content=SuccessResponse().model_dump())


def _session_token(request: Request, settings: AppSettings) -> Optional[str]:
    return request.cookies.get(settings.access.cookie_name)


async def _enforce(
    limiter: RateLimiter, identifier: str, window_seconds: int, max_requests: int, message: str
) -> None:
    result = await limiter.check(identifier, window_seconds, max_requests)
    if not result.allowed:
        log.warning("rate_limit_exceeded", scope=identifier.split(":", 1)[0])
        raise RateLimitError(message, retry_after_seconds=result.retry_after_seconds)


async def _allowed(
    limiter: RateLimiter, identifier: str, window_seconds: int, max_requests: int
) -> bool:
    result = await limiter.check(identifier, window_seconds, max_requests)
    if not result.allowed:
        log.info("otp_send_throttled", scope=identifier.split(":", 1)[0])
    return result.allowed


@router.post("/send-otp")
async def send_otp(
    body: SendOtpRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    settings: AppSettings = Depends(get_settings),
    limiter: RateLimiter = Depends(get_rate_limiter),
    service: EndorsementAccessService = Depends(get_access_service),
) -> JSONResponse:
    cfg = settings.access
    client_ip = get_client_ip(request)

    # Throttling is silent here so probing callers cannot tell they were cut off
    if not await _allowed(
        limiter,
        f"endorsement-otp-send:{client_ip}",
        cfg.send_otp_ip_window_seconds,
        cfg.send_otp_ip_limit,
    ):
        return _ok()

    endorsement_id = body.endorsement_id.strip()
    email_normalized = normalize_email(body.email)
    if endorsement_id and email_normalized:
        if not await _allowed(
            limiter,
            f"endorsement-otp-send-pair:{endorsement_id}:{email_normalized}",
            cfg.send_otp_pair_window_seconds,
            cfg.send_otp_pair_limit,
        ):
            return _ok()

    code_request = service.request_code(
        body.endorsement_id,
        body.email,
        base_url=get_site_base_url(settings.app_url, request),
        request_meta=RequestMeta(
            ip_address=hash_ip(client_ip), user_agent=get_user_agent(request)
        ),
    )
    # Lookup, issue and send run after the response is sent; the reply
    # must not wait on anything that depends on the email matching
    background_tasks.add_task(service.process_code_request, code_request)
    return _ok()


@router.post("/verify-otp")
async def verify_otp(
    body: VerifyOtpRequest,
    request: Request,
    settings: AppSettings = Depends(get_settings),
    limiter: RateLimiter = Depends(get_rate_limiter),
    service: EndorsementAccessService = Depends(get_access_service),
) -> JSONResponse:
    cfg = settings.access
    client_ip = get_client_ip(request)

    await _enforce(
        limiter,
        f"endorsement-otp-verify:{client_ip}",
        cfg.verify_otp_ip_window_seconds,
        cfg.verify_otp_ip_limit,
        TOO_MANY_ATTEMPTS_MESSAGE,
    )

    endorsement_id = body.endorsement_id.strip()
    email_normalized = normalize_email(body.email)
    if endorsement_id and email_normalized:
        await _enforce(
            limiter,
            f"endorsement-otp-verify-pair:{endorsement_id}:{email_normalized}",
            cfg.verify_otp_pair_window_seconds,
            cfg.verify_otp_pair_limit,
            TOO_MANY_ATTEMPTS_MESSAGE,
        )

    session = await service.verify_code(body.endorsement_id, body.email, body.otp)

    response = _ok()
    response.set_cookie(
        cfg.cookie_name,
        session.token,
        max_age=session.max_age_seconds,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )
    return response


@router.get("/endorsement/{endorsement_id}")
async def get_managed_endorsement(
    endorsement_id: str,
    request: Request,
    settings: AppSettings = Depends(get_settings),
    limiter: RateLimiter = Depends(get_rate_limiter),
    service: EndorsementAccessService = Depends(get_access_service),
) -> JSONResponse:
    cfg = settings.access
    await _enforce(
        limiter,
        f"endorsement-access-update:{get_client_ip(request)}",
        cfg.update_ip_window_seconds,
        cfg.update_ip_limit,
        TOO_MANY_REQUESTS_MESSAGE,
    )

    endorsement = await service.get_managed_endorsement(
        _session_token(request, settings), endorsement_id
    )
    payload = ManagedEndorsementResponse(
        endorsement=ManagedEndorsement.from_doc(endorsement)
    )
    return JSONResponse(
        status_code=200, content=payload.model_dump(by_alias=True, mode="json")
    )


@router.patch("/endorsement/{endorsement_id}")
async def update_endorsement(
    endorsement_id: str,
    body: UpdateEndorsementRequest,
    request: Request,
    settings: AppSettings = Depends(get_settings),
    limiter: RateLimiter = Depends(get_rate_limiter),
    service: EndorsementAccessService = Depends(get_access_service),
) -> JSONResponse:
    cfg = settings.access
    await _enforce(
        limiter,
        f"endorsement-access-update:{get_client_ip(request)}",
        cfg.update_ip_window_seconds,
        cfg.update_ip_limit,
        TOO_MANY_REQUESTS_MESSAGE,
    )

    await service.update_endorsement(
        _session_token(request, settings), endorsement_id, body
    )
    return _ok()


@router.delete("/endorsement/{endorsement_id}")
async def delete_endorsement(
    endorsement_id: str,
    request: Request,
    settings: AppSettings = Depends(get_settings),
    limiter: RateLimiter = Depends(get_rate_limiter),
    service: EndorsementAccessService = Depends(get_access_service),
) -> JSONResponse:
    cfg = settings.access
    await _enforce(
        limiter,
        f"endorsement-access-delete:{get_client_ip(request)}",
        cfg.delete_ip_window_seconds,
        cfg.delete_ip_limit,
        TOO_MANY_REQUESTS_MESSAGE,
    )

    await service.delete_endorsement(_session_token(request, settings), endorsement_id)

    response = _ok()
    response.delete_cookie(
        cfg.cookie_name,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )
    return response
