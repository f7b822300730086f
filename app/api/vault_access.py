from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import client_address, get_db, require_user_auth
from app.models.person import Person
from app.schemas.vault import MessageResponse
from app.schemas.vault_access import (
    AccessDecision,
    AccessEntryListing,
    AccessEntryRead,
    AccessOfferCreate,
    AccessRequestCreate,
    GrantDirectRequest,
    GrantDirectResponse,
)
from app.services import vault_access as access_service

router = APIRouter(prefix="/access", tags=["access"])


@router.post(
    "/request",
    response_model=AccessEntryRead,
    status_code=status.HTTP_201_CREATED,
)
def request_access(
    payload: AccessRequestCreate,
    source_address: str | None = Depends(client_address),
    person: Person = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return access_service.access_control.request(
        db, person.id, payload.document_id, source_address
    )


@router.post(
    "/offer",
    response_model=AccessEntryRead,
    status_code=status.HTTP_201_CREATED,
)
def offer_access(
    payload: AccessOfferCreate,
    source_address: str | None = Depends(client_address),
    person: Person = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return access_service.access_control.offer(
        db, person.id, payload.document_id, payload.recipient_identifier, source_address
    )


@router.post("/approve", response_model=AccessEntryRead)
def respond_to_request(
    payload: AccessDecision,
    source_address: str | None = Depends(client_address),
    person: Person = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return access_service.access_control.respond(
        db, payload.request_id, person.id, payload.status, source_address
    )


@router.get("/requests", response_model=AccessEntryListing)
def list_requests(
    person: Person = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return access_service.access_control.list_for_actor(db, person.id)


@router.post("/grant-direct", response_model=GrantDirectResponse)
def grant_direct(
    payload: GrantDirectRequest,
    source_address: str | None = Depends(client_address),
    person: Person = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    entry, recipient = access_service.access_control.grant_direct(
        db, person.id, payload.document_id, payload.recipient_identifier, source_address
    )
    return {"message": f"Access granted to {recipient.username}", "entry": entry}


@router.delete("/{entry_id}", response_model=MessageResponse)
def dismiss_entry(
    entry_id: UUID,
    source_address: str | None = Depends(client_address),
    person: Person = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    access_service.access_control.dismiss(db, entry_id, person.id, source_address)
    return {"message": "Request removed"}
