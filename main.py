import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import auth
import reports
import rewards
import schemas
import workflow
from config import Settings
from database import Database, get_db
from errors import EcoBhanduError

logger = logging.getLogger(__name__)

router = APIRouter()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def resolve_limit(limit: Optional[int], settings: Settings) -> int:
    if limit is None:
        return settings.default_list_limit
    return min(limit, settings.max_list_limit)


@router.get("/health")
def health():
    return {"status": "ok", "message": "EcoBhandu API Server is running"}


# --- Auth ---

@router.post("/auth/signup", response_model=schemas.User, status_code=status.HTTP_201_CREATED)
def signup(user: schemas.UserSignup, db: Session = Depends(get_db)):
    return auth.signup(db, user.name, user.email, user.password, user.role)


@router.post("/auth/signin", response_model=schemas.SigninResult)
def signin(
    credentials: schemas.UserSignin,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = auth.signin(db, credentials.email, credentials.password, credentials.role)
    access_token = auth.create_access_token(
        data={"sub": user.id, "role": user.role},
        secret_key=settings.secret_key,
        expires_delta=auth.timedelta(minutes=settings.access_token_expire_minutes),
    )
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "access_token": access_token,
        "token_type": "bearer",
    }


@router.get("/users/me", response_model=schemas.UserProfile)
def read_users_me(current_user=Depends(auth.get_current_user)):
    return current_user


# --- Reports ---

@router.post("/reports", response_model=schemas.ReportCreated, status_code=status.HTTP_201_CREATED)
def create_report(report: schemas.ReportCreate, db: Session = Depends(get_db)):
    db_report = reports.create_report(
        db,
        user_id=report.user_id,
        category=report.category,
        description=report.description,
        location=report.location,
        coordinates=report.coordinates.model_dump(),
        severity=report.severity,
        is_urgent=report.is_urgent,
        image=report.image,
        user_name=report.user_name,
        user_email=report.user_email,
    )
    return {"id": db_report.id, "message": "Report submitted successfully", "report": db_report}


@router.get("/reports", response_model=schemas.ReportList)
def read_reports(
    status: Optional[str] = None,
    category: Optional[str] = None,
    severity: Optional[str] = None,
    user_id: Optional[str] = Query(None, alias="userId"),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    found = reports.list_reports(
        db,
        status=status,
        category=category,
        severity=severity,
        user_id=user_id,
        limit=resolve_limit(limit, settings),
    )
    return {"count": len(found), "reports": found}


@router.get("/reports/stats/summary", response_model=schemas.ReportStats)
def read_report_stats(db: Session = Depends(get_db)):
    return reports.report_stats(db)


@router.get("/reports/{report_id}", response_model=schemas.Report)
def read_report(report_id: str, db: Session = Depends(get_db)):
    return reports.get_report(db, report_id)


@router.patch("/reports/{report_id}/status", response_model=schemas.ReportUpdated)
def update_report_status(
    report_id: str,
    body: schemas.StatusUpdate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user=Depends(auth.get_optional_user),
):
    report = workflow.update_status(
        db,
        report_id,
        body.status,
        assigned_to=body.assigned_to,
        actor=current_user,
        allowed_statuses=settings.generic_status_targets,
    )
    return {"message": "Report status updated successfully", "report": report}


@router.patch("/reports/{report_id}/resolve", response_model=schemas.ReportUpdated)
def resolve_report(report_id: str, body: schemas.ResolveRequest, db: Session = Depends(get_db)):
    report = reports.resolve_report(db, report_id, body.user_id, image=body.image, notes=body.notes)
    return {"message": "Report resolved successfully", "report": report}


@router.post("/reports/{report_id}/upvote", response_model=schemas.UpvoteResult)
def upvote_report(report_id: str, body: schemas.UpvoteRequest, db: Session = Depends(get_db)):
    upvoted, upvotes = reports.toggle_upvote(db, report_id, body.user_id)
    message = "Report upvoted" if upvoted else "Upvote removed"
    return {"message": message, "upvoted": upvoted, "upvotes": upvotes}


@router.post("/reports/{report_id}/comment", response_model=schemas.CommentAdded)
def comment_report(report_id: str, body: schemas.CommentRequest, db: Session = Depends(get_db)):
    comment = reports.add_comment(db, report_id, body.user_id, body.comment, user_name=body.user_name)
    return {"message": "Comment added successfully", "comment": comment}


@router.delete("/reports/{report_id}", response_model=schemas.Message)
def delete_report(report_id: str, body: schemas.DeleteRequest, db: Session = Depends(get_db)):
    reports.delete_report(db, report_id, body.user_id)
    return {"message": "Report deleted successfully"}


# --- Volunteers & rewards ---

@router.get("/volunteers/{volunteer_id}/stats", response_model=schemas.VolunteerStats)
def read_volunteer_stats(volunteer_id: str, db: Session = Depends(get_db)):
    return workflow.volunteer_stats(db, volunteer_id)


@router.get("/rewards", response_model=schemas.RewardList)
def read_rewards():
    return {"rewards": rewards.catalog()}


@router.get("/rewards/balance", response_model=schemas.Balance)
def read_balance(user_id: str = Query(..., alias="userId"), db: Session = Depends(get_db)):
    return rewards.balance(db, user_id)


@router.get("/rewards/claims", response_model=schemas.ClaimList)
def read_claims(
    user_id: str = Query(..., alias="userId"),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return {"claims": rewards.list_claims(db, user_id, limit=resolve_limit(limit, settings))}


@router.post("/rewards/claim", response_model=schemas.ClaimCreated, status_code=status.HTTP_201_CREATED)
def claim_reward(body: schemas.ClaimRequest, db: Session = Depends(get_db)):
    reward_claim = rewards.claim(db, body.user_id, body.reward_id)
    return {"message": "Reward claimed", "claim": reward_claim}


# --- Error handlers ---

async def domain_error_handler(request: Request, exc: EcoBhanduError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if not errors:
        return JSONResponse(status_code=400, content={"detail": "Invalid request"})
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    detail = f"{field}: {first['msg']}" if field else first["msg"]
    return JSONResponse(status_code=400, content={"detail": detail})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.db.open()
        yield
        app.state.db.close()

    app = FastAPI(title="EcoBhandu API", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = Database(settings.database_url)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(EcoBhanduError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(router)
    return app


app = create_app()
