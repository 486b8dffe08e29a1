"""Mail and auth routes. Every handler delegates to EmailService and maps its ServiceResult to a response."""

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from draftsync.db.repositories import user_repo
from draftsync.errors import PARTIAL_UPSERT, AuthenticationError
from draftsync.models.credentials import Credentials
from draftsync.models.results import ServiceResult
from draftsync.services.email_service import EmailService
from draftsync.utils.logger import get_logger

logger = get_logger("draftsync.api")

_STATUS_BY_CODE = {
    PARTIAL_UPSERT: 207,
    "VALIDATION_ERROR": 400,
    "AUTHENTICATION_ERROR": 401,
    "AUTHORIZATION_ERROR": 403,
    "NOT_FOUND_ERROR": 404,
    "EXTERNAL_SERVICE_ERROR": 502,
}


def status_for(result: ServiceResult) -> int:
    if result.success:
        return 200
    return _STATUS_BY_CODE.get(result.error_code or "", 500)


def to_response(result: ServiceResult) -> JSONResponse:
    return JSONResponse(status_code=status_for(result), content=result.model_dump(mode="json"))


def get_service(request: Request) -> EmailService:
    return request.app.state.email_service


async def current_uid(request: Request, authorization: Optional[str] = Header(default=None)) -> str:
    """Verify the bearer token and record the caller as online."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    token = authorization.split(" ", 1)[1].strip()
    try:
        uid = request.app.state.identity_verifier.verify(token)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=e.message) from e
    await asyncio.to_thread(user_repo.touch_presence, uid)
    return uid


class ReplyBody(BaseModel):
    body: str


class DraftBody(BaseModel):
    tone: Optional[str] = None
    recipient: Optional[str] = None


class TokensBody(BaseModel):
    email: str
    name: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


mail_router = APIRouter(prefix="/mail", tags=["mail"])
auth_router = APIRouter(prefix="/auth", tags=["auth"])


@mail_router.get("/threads")
async def list_threads(
    limit: int = 25,
    uid: str = Depends(current_uid),
    service: EmailService = Depends(get_service),
) -> JSONResponse:
    return to_response(await service.get_threads(uid, limit=limit))


@mail_router.get("/threads/{thread_id}")
async def get_thread(
    thread_id: str,
    uid: str = Depends(current_uid),
    service: EmailService = Depends(get_service),
) -> JSONResponse:
    return to_response(await service.get_thread(uid, thread_id))


@mail_router.post("/sync")
async def sync(
    uid: str = Depends(current_uid),
    service: EmailService = Depends(get_service),
) -> JSONResponse:
    return to_response(await service.sync_user_emails(uid))


@mail_router.post("/threads/{thread_id}/reply")
async def reply(
    thread_id: str,
    body: ReplyBody,
    uid: str = Depends(current_uid),
    service: EmailService = Depends(get_service),
) -> JSONResponse:
    return to_response(await service.reply_to_thread(uid, thread_id, body.body))


@mail_router.post("/threads/{thread_id}/draft")
async def generate_draft(
    thread_id: str,
    body: DraftBody,
    uid: str = Depends(current_uid),
    service: EmailService = Depends(get_service),
) -> JSONResponse:
    return to_response(await service.generate_draft(uid, thread_id, tone=body.tone, recipient=body.recipient))


@mail_router.get("/threads/{thread_id}/suggested-reply")
async def suggested_reply(
    thread_id: str,
    uid: str = Depends(current_uid),
    service: EmailService = Depends(get_service),
) -> JSONResponse:
    return to_response(await service.get_suggested_reply(uid, thread_id))


@mail_router.get("/drafts")
async def list_drafts(
    uid: str = Depends(current_uid),
    service: EmailService = Depends(get_service),
) -> JSONResponse:
    return to_response(await service.get_drafts(uid))


@mail_router.post("/drafts/{draft_id}/send")
async def send_draft(
    draft_id: str,
    uid: str = Depends(current_uid),
    service: EmailService = Depends(get_service),
) -> JSONResponse:
    return to_response(await service.send_draft(uid, draft_id))


@auth_router.put("/gmail/tokens")
async def store_gmail_tokens(
    body: TokensBody,
    uid: str = Depends(current_uid),
    service: EmailService = Depends(get_service),
) -> JSONResponse:
    """Connect the caller's mailbox with tokens obtained by the client-side OAuth flow."""
    credentials = Credentials(access_token=body.access_token, refresh_token=body.refresh_token)
    return to_response(await service.connect_mailbox(uid, body.email, credentials, name=body.name))
