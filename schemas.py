from pydantic import BaseModel, ConfigDict, EmailStr, Field, FiniteFloat, StringConstraints
from pydantic.alias_generators import to_camel
from typing import Annotated, List, Literal, Optional
from datetime import datetime

RequiredStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class CamelModel(BaseModel):
    # camelCase on the wire, snake_case accepted too
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Message(CamelModel):
    message: str


# --- Users ---

class UserSignup(CamelModel):
    name: RequiredStr
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Literal["citizen", "volunteer"]


class UserSignin(CamelModel):
    email: RequiredStr
    password: str = Field(..., min_length=1)
    role: Optional[str] = None


class User(CamelModel):
    id: str
    name: str
    email: str
    role: str


class UserProfile(User):
    total_reports: int = 0
    last_report_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


class SigninResult(User):
    access_token: str
    token_type: str = "bearer"


# --- Reports ---

class Coordinates(CamelModel):
    latitude: FiniteFloat
    longitude: FiniteFloat


class ReportCreate(CamelModel):
    user_id: RequiredStr
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    category: RequiredStr
    description: RequiredStr
    severity: Optional[Literal["Minor", "Major", "Critical"]] = None
    is_urgent: Optional[bool] = None
    location: RequiredStr
    coordinates: Coordinates
    image: Optional[str] = None


class Comment(CamelModel):
    id: str
    user_id: str
    user_name: Optional[str] = None
    comment: str
    created_at: datetime


class Report(CamelModel):
    id: str
    user_id: str
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    category: str
    description: str
    severity: str
    is_urgent: bool
    location: str
    coordinates: Coordinates
    image: Optional[str] = None
    status: str
    assigned_to: Optional[str] = None
    version: int
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    resolution_notes: Optional[str] = None
    resolved_image: Optional[str] = None
    upvotes: int
    upvoted_by: List[str] = []
    comments: List[Comment] = []
    created_at: datetime
    updated_at: datetime


class ReportCreated(CamelModel):
    id: str
    message: str
    report: Report


class ReportList(CamelModel):
    count: int
    reports: List[Report]


class ReportUpdated(CamelModel):
    message: str
    report: Report


class StatusUpdate(CamelModel):
    status: RequiredStr
    assigned_to: Optional[str] = None


class ResolveRequest(CamelModel):
    user_id: RequiredStr
    image: Optional[str] = None
    notes: Optional[str] = None


class UpvoteRequest(CamelModel):
    user_id: RequiredStr


class UpvoteResult(CamelModel):
    message: str
    upvoted: bool
    upvotes: int


class CommentRequest(CamelModel):
    user_id: RequiredStr
    user_name: Optional[str] = None
    comment: RequiredStr


class CommentAdded(CamelModel):
    message: str
    comment: Comment


class DeleteRequest(CamelModel):
    user_id: RequiredStr


class StatusCount(CamelModel):
    status: str
    count: int


class SeverityCount(CamelModel):
    severity: str
    count: int


class CategoryCount(CamelModel):
    category: str
    count: int


class ReportStats(CamelModel):
    total: int
    by_status: List[StatusCount]
    by_severity: List[SeverityCount]
    top_categories: List[CategoryCount]


# --- Volunteers & rewards ---

class VolunteerStats(CamelModel):
    tasks_completed: int
    in_progress: int
    eco_points: int


class Reward(CamelModel):
    id: str
    title: str
    description: str
    cost: int
    sponsor: Optional[str] = None


class RewardList(CamelModel):
    rewards: List[Reward]


class Balance(CamelModel):
    eco_points: int
    spent: int
    available: int


class ClaimRequest(CamelModel):
    user_id: RequiredStr
    reward_id: RequiredStr


class Claim(CamelModel):
    id: str
    user_id: str
    reward_id: str
    title: str
    cost: int
    sponsor: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime


class ClaimCreated(CamelModel):
    message: str
    claim: Claim


class ClaimList(CamelModel):
    claims: List[Claim]
