"""
Career domain records produced by the structured pipeline steps.

Agents answer with loosely-shaped JSON, so enumerations are normalised to
lowercase before validation and unknown keys are ignored.
"""

from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
import uuid


ExperienceLevel = Literal["entry", "mid", "senior", "lead", "executive"]
EmploymentType = Literal["full-time", "part-time", "contract", "freelance", "internship"]
SkillLevel = Literal["none", "beginner", "intermediate", "advanced", "expert"]
GapSeverity = Literal["none", "minor", "moderate", "major"]
TopicCategory = Literal["behavioral", "technical", "situational", "company"]
Difficulty = Literal["easy", "medium", "hard"]


class CareerRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _lower(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


class Job(CareerRecord):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str = Field(min_length=1)
    company: str = Field(min_length=1)
    location: str = ""
    remote: bool = False
    description: str = ""
    salary_min: Optional[float] = Field(default=None, ge=0)
    salary_max: Optional[float] = Field(default=None, ge=0)
    skills: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    experience_level: Optional[ExperienceLevel] = None
    employment_type: Optional[EmploymentType] = None

    @field_validator("experience_level", "employment_type", mode="before")
    @classmethod
    def lowercase_choices(cls, value):
        return _lower(value)


class SkillGap(CareerRecord):
    skill: str = Field(min_length=1)
    required: bool = True
    profile_level: SkillLevel = "none"
    required_level: SkillLevel = "intermediate"
    gap_severity: GapSeverity = "moderate"
    suggestion: str = ""

    @field_validator("profile_level", "required_level", "gap_severity", mode="before")
    @classmethod
    def lowercase_choices(cls, value):
        return _lower(value)


class Match(CareerRecord):
    job_id: Optional[str] = None
    job_title: str = Field(min_length=1)
    overall_score: float = Field(ge=0, le=100)
    skill_match_score: float = Field(default=0, ge=0, le=100)
    experience_match_score: float = Field(default=0, ge=0, le=100)
    education_match_score: float = Field(default=0, ge=0, le=100)
    culture_fit_score: float = Field(default=0, ge=0, le=100)
    skill_gaps: List[SkillGap] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    reasoning: str = ""


class InterviewQuestion(CareerRecord):
    question: str = Field(min_length=1)
    tip: str = ""


class InterviewTopic(CareerRecord):
    title: str = Field(min_length=1)
    category: TopicCategory = "technical"
    difficulty: Difficulty = "medium"
    questions: List[InterviewQuestion] = Field(default_factory=list)

    @field_validator("category", "difficulty", mode="before")
    @classmethod
    def lowercase_choices(cls, value):
        return _lower(value)


def link_matches_to_jobs(matches: List[Match], jobs: List[Job]) -> List[Match]:
    """Attach job ids by case-insensitive exact title; unmatched entries keep job_id None."""
    by_title = {job.title.strip().lower(): job.id for job in jobs}
    linked = []
    for match in matches:
        job_id = by_title.get(match.job_title.strip().lower())
        linked.append(match.model_copy(update={"job_id": job_id}) if job_id else match)
    return linked
