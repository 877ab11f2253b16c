from typing import Optional, List

from sqlmodel import SQLModel, Field, Relationship

ROLE_FOUNDER = "founder"
ROLE_TEAM = "team"


class TargetEvaluationCriterion(SQLModel, table=True):
    __tablename__ = "target_evaluation_criteria"
    target_id: int = Field(foreign_key="targets.id", primary_key=True)
    evaluation_criterion_id: int = Field(foreign_key="evaluation_criteria.id", primary_key=True)


class EvaluationCriterion(SQLModel, table=True):
    __tablename__ = "evaluation_criteria"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None

    targets: List["Target"] = Relationship(
        back_populates="evaluation_criteria",
        link_model=TargetEvaluationCriterion,
    )


class Target(SQLModel, table=True):
    __tablename__ = "targets"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    # "founder" targets are done by each founder on their own; anything else is a team target
    role: str = Field(default=ROLE_TEAM)

    evaluation_criteria: List[EvaluationCriterion] = Relationship(
        back_populates="targets",
        link_model=TargetEvaluationCriterion,
    )

    @property
    def founder_event(self) -> bool:
        return self.role == ROLE_FOUNDER
