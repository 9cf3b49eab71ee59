"""Certification catalog endpoints."""

from fastapi import APIRouter, HTTPException

from core.database import DbSession
from schemas import CertificationTypeCreate, CertificationTypeResponse
from services.catalog_service import (
    CertificationTypeExistsError,
    create_certification_type,
    list_certification_types,
    to_response,
)
from services.errors import EmptyCertificationType, UnsupportedCriterionKind

router = APIRouter(prefix="/api/certification-types", tags=["catalog"])


@router.get("", response_model=list[CertificationTypeResponse])
async def get_certification_types(db: DbSession) -> list[CertificationTypeResponse]:
    """All certification types with their criteria, bronze first."""
    return await list_certification_types(db)


@router.post(
    "",
    response_model=CertificationTypeResponse,
    status_code=201,
    responses={
        409: {"description": "Name already taken"},
        422: {"description": "No criteria, or an unsupported criterion"},
    },
)
async def post_certification_type(
    body: CertificationTypeCreate,
    db: DbSession,
) -> CertificationTypeResponse:
    """Create a certification type. Types are not edited afterwards."""
    try:
        certification_type = await create_certification_type(
            db,
            name=body.name,
            description=body.description,
            level=body.level,
            criteria=body.criteria,
        )
    except CertificationTypeExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (EmptyCertificationType, UnsupportedCriterionKind) as e:
        raise HTTPException(status_code=422, detail=str(e))

    return to_response(certification_type)
