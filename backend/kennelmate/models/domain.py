"""
KennelMate Backend - Domain Snapshot Models

Purpose: Read-only views of the breeding data the reminder rules scan.
The CRUD screens own these records; the reminder engine only reads them.
"""

from typing import List, Optional, Dict, Any
from datetime import date
from pydantic import BaseModel, Field
from enum import Enum


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(value[:10])


class Gender(str, Enum):
    """Dog gender"""
    MALE = "male"
    FEMALE = "female"


class PregnancyStatus(str, Enum):
    """Pregnancy status"""
    ACTIVE = "active"
    COMPLETED = "completed"
    LOST = "lost"


class HeatRecord(BaseModel):
    """One recorded heat cycle"""
    start_date: date
    notes: Optional[str] = None


class Dog(BaseModel):
    """Dog model"""

    id: str
    name: str
    gender: Gender
    breed: Optional[str] = None
    date_of_birth: Optional[date] = None
    vaccination_date: Optional[date] = None
    heat_interval: Optional[int] = Field(None, description="Days between heat cycles")
    heat_history: List[HeatRecord] = Field(default_factory=list)

    @property
    def is_female(self) -> bool:
        return self.gender == Gender.FEMALE

    @classmethod
    def from_dynamodb_item(cls, item: Dict[str, Any]) -> 'Dog':
        """Create from DynamoDB item"""
        heat_interval = item.get('heat_interval')
        return cls(
            id=item['dog_id'],
            name=item['name'],
            gender=item['gender'],
            breed=item.get('breed'),
            date_of_birth=_parse_date(item.get('date_of_birth')),
            vaccination_date=_parse_date(item.get('vaccination_date')),
            heat_interval=int(heat_interval) if heat_interval is not None else None,
            heat_history=[
                HeatRecord(start_date=_parse_date(record['date']), notes=record.get('notes'))
                for record in item.get('heat_history', [])
                if record.get('date')
            ],
        )


class Litter(BaseModel):
    """Litter model"""

    id: str
    name: str
    date_of_birth: Optional[date] = None
    dam_id: Optional[str] = None
    sire_id: Optional[str] = None
    archived: bool = False

    @classmethod
    def from_dynamodb_item(cls, item: Dict[str, Any]) -> 'Litter':
        """Create from DynamoDB item"""
        return cls(
            id=item['litter_id'],
            name=item['name'],
            date_of_birth=_parse_date(item.get('date_of_birth')),
            dam_id=item.get('dam_id'),
            sire_id=item.get('sire_id'),
            archived=bool(item.get('archived', False)),
        )


class PlannedBreeding(BaseModel):
    """Planned breeding (a litter that has not happened yet)"""

    id: str
    female_id: str
    female_name: str
    male_name: Optional[str] = None
    expected_heat_date: Optional[date] = None

    @classmethod
    def from_dynamodb_item(cls, item: Dict[str, Any]) -> 'PlannedBreeding':
        """Create from DynamoDB item"""
        return cls(
            id=item['breeding_id'],
            female_id=item['female_id'],
            female_name=item['female_name'],
            male_name=item.get('male_name'),
            expected_heat_date=_parse_date(item.get('expected_heat_date')),
        )


class Pregnancy(BaseModel):
    """Pregnancy model"""

    id: str
    female_id: str
    female_name: str
    mating_date: Optional[date] = None
    expected_due_date: Optional[date] = None
    status: PregnancyStatus = PregnancyStatus.ACTIVE

    @classmethod
    def from_dynamodb_item(cls, item: Dict[str, Any]) -> 'Pregnancy':
        """Create from DynamoDB item"""
        return cls(
            id=item['pregnancy_id'],
            female_id=item['female_id'],
            female_name=item['female_name'],
            mating_date=_parse_date(item.get('mating_date')),
            expected_due_date=_parse_date(item.get('expected_due_date')),
            status=item.get('status', PregnancyStatus.ACTIVE),
        )


class DomainSnapshot(BaseModel):
    """Everything the reminder rules read, fetched once per pipeline run"""

    dogs: List[Dog] = Field(default_factory=list)
    litters: List[Litter] = Field(default_factory=list)
    planned_breedings: List[PlannedBreeding] = Field(default_factory=list)
    pregnancies: List[Pregnancy] = Field(default_factory=list)
