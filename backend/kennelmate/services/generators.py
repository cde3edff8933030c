"""
KennelMate Backend - Reminder Rule Generators

Purpose: Pure functions that scan a domain snapshot and emit reminder
candidates. Each generator owns one concern and encodes a visibility window:
the day range around a computed event date during which the reminder is shown.

    Rule          Trigger                        Window      Priority
    heat          last heat + interval (180)     [-5, +30]   high if <= 7 days, else medium
    vaccination   last vaccination + 365         [-30, +7]   high if due/overdue, medium if <= 7, else low
    planned-heat  expected heat date             [0, +30]    high
    birthday      next date-of-birth anniversary [0, +7]     medium
    litter        litter birth date + offsets    age range   medium
    general       aggregate conditions           per rule    low

A bad record never aborts a run: an error while evaluating one dog, litter,
breeding or aggregate rule is logged and that entity is skipped.

Testing:
    from kennelmate.services.generators import generate_heat_reminders
    candidates = generate_heat_reminders(snapshot, date.today())
"""

import logging
from datetime import date, timedelta
from typing import Callable, Iterable, List, NamedTuple, Optional, Tuple

from kennelmate.config import settings, ReminderRules
from kennelmate.models.domain import DomainSnapshot, Dog, Litter, PlannedBreeding, Pregnancy, PregnancyStatus
from kennelmate.models.reminder import ReminderCandidate, ReminderPriority, ReminderType
from kennelmate.services.identity import reminder_id_for

logger = logging.getLogger(__name__)

Generator = Callable[..., List[ReminderCandidate]]


class LitterMilestone(NamedTuple):
    key: str
    title: str
    description: str
    min_age: int
    max_age: int
    due_offset: int


LITTER_MILESTONES: Tuple[LitterMilestone, ...] = (
    LitterMilestone("deworm-3w", "Deworm {name} Puppies", "First deworming for puppies at 3 weeks old", 19, 22, 21),
    LitterMilestone("deworm-5w", "Deworm {name} Puppies", "Second deworming for puppies at 5 weeks old", 33, 36, 35),
    LitterMilestone("deworm-7w", "Deworm {name} Puppies", "Third deworming for puppies at 7 weeks old", 47, 50, 49),
    LitterMilestone("vet-6w", "Schedule Vet Visit for {name}", "Book the vet check before puppies go to new homes", 40, 43, 42),
    LitterMilestone("vaccination-6w", "First Vaccinations for {name}", "Puppies are due their first vaccinations", 40, 44, 42),
    LitterMilestone("microchip-7w", "Microchip {name} Puppies", "Microchip puppies and register the chip numbers", 47, 51, 49),
    LitterMilestone("temperament-7w", "Temperament Test {name}", "Run temperament tests to help match puppies with homes", 47, 51, 49),
)


def _rules(rules: Optional[ReminderRules]) -> ReminderRules:
    return rules if rules is not None else settings.reminder_rules


def _days(count: int) -> str:
    return f"{count} day{'s' if abs(count) != 1 else ''}"


def _evaluate_each(
    rule: str,
    entities: Iterable,
    evaluate: Callable[[object], Iterable[ReminderCandidate]]
) -> List[ReminderCandidate]:
    """Run a per-entity rule, isolating failures to the entity that caused them"""
    candidates: List[ReminderCandidate] = []

    for entity in entities:
        try:
            candidates.extend(evaluate(entity))
        except Exception as e:
            label = getattr(entity, 'id', None) or getattr(entity, '__name__', entity)
            logger.exception(f"{rule} rule failed for {label!r}, skipping: {e}")

    return candidates


# =============================================================================
# HEAT CYCLES
# =============================================================================

def _heat_reminder(dog: Dog, today: date, rules: ReminderRules) -> List[ReminderCandidate]:
    if not dog.is_female or not dog.heat_history:
        return []

    last_heat = max(record.start_date for record in dog.heat_history)

    interval = dog.heat_interval or rules.heat_default_interval_days
    if interval <= 0:
        raise ValueError(f"invalid heat interval {interval}")

    next_heat = last_heat + timedelta(days=interval)
    days_until = (next_heat - today).days

    if not rules.heat_window_min_days <= days_until <= rules.heat_window_max_days:
        logger.debug(f"No heat reminder for {dog.id}: {days_until} days until heat")
        return []

    if days_until < 0:
        title = f"{dog.name}'s Heat Started"
        description = f"Heat started {_days(-days_until)} ago"
    elif days_until == 0:
        title = f"{dog.name}'s Heat Approaching"
        description = "Heat cycle expected today"
    else:
        title = f"{dog.name}'s Heat Approaching"
        description = f"Expected heat cycle in {_days(days_until)}"

    priority = ReminderPriority.HIGH if days_until <= rules.heat_high_priority_days else ReminderPriority.MEDIUM

    return [ReminderCandidate(
        id=reminder_id_for(ReminderType.HEAT, dog.id, next_heat),
        title=title,
        description=description,
        due_date=next_heat,
        priority=priority,
        type=ReminderType.HEAT,
        related_id=dog.id,
    )]


def generate_heat_reminders(
    snapshot: DomainSnapshot,
    today: date,
    rules: Optional[ReminderRules] = None
) -> List[ReminderCandidate]:
    """Heat cycle reminders for female dogs with recorded heat history"""
    rules = _rules(rules)
    return _evaluate_each("heat", snapshot.dogs, lambda dog: _heat_reminder(dog, today, rules))


# =============================================================================
# VACCINATIONS
# =============================================================================

def _vaccination_reminder(dog: Dog, today: date, rules: ReminderRules) -> List[ReminderCandidate]:
    if not dog.vaccination_date:
        return []

    next_vaccination = dog.vaccination_date + timedelta(days=rules.vaccination_interval_days)
    days_until = (next_vaccination - today).days

    if not rules.vaccination_window_min_days <= days_until <= rules.vaccination_window_max_days:
        return []

    if days_until <= 0:
        priority = ReminderPriority.HIGH
    elif days_until <= rules.vaccination_due_soon_days:
        priority = ReminderPriority.MEDIUM
    else:
        priority = ReminderPriority.LOW

    if days_until < 0:
        title = f"{dog.name}'s Vaccination Overdue"
        description = f"Vaccination overdue by {_days(-days_until)}"
    elif days_until == 0:
        title = f"{dog.name}'s Vaccination Due"
        description = "Vaccination due today"
    else:
        title = f"{dog.name}'s Vaccination Due Soon"
        description = f"Vaccination due in {_days(days_until)}"

    return [ReminderCandidate(
        id=reminder_id_for(ReminderType.VACCINATION, dog.id, next_vaccination),
        title=title,
        description=description,
        due_date=next_vaccination,
        priority=priority,
        type=ReminderType.VACCINATION,
        related_id=dog.id,
    )]


def generate_vaccination_reminders(
    snapshot: DomainSnapshot,
    today: date,
    rules: Optional[ReminderRules] = None
) -> List[ReminderCandidate]:
    """Annual vaccination reminders"""
    rules = _rules(rules)
    return _evaluate_each("vaccination", snapshot.dogs, lambda dog: _vaccination_reminder(dog, today, rules))


# =============================================================================
# PLANNED BREEDINGS
# =============================================================================

def _planned_heat_reminder(breeding: PlannedBreeding, today: date, rules: ReminderRules) -> List[ReminderCandidate]:
    if not breeding.expected_heat_date:
        return []

    days_until = (breeding.expected_heat_date - today).days

    if not 0 <= days_until <= rules.planned_heat_window_max_days:
        return []

    description = "Heat expected today" if days_until == 0 else f"Heat expected in {_days(days_until)}"
    if breeding.male_name:
        description += f" (planned breeding with {breeding.male_name})"

    return [ReminderCandidate(
        id=reminder_id_for(ReminderType.PLANNED_HEAT, breeding.id, breeding.expected_heat_date),
        title=f"Upcoming Heat for {breeding.female_name}",
        description=description,
        due_date=breeding.expected_heat_date,
        priority=ReminderPriority.HIGH,
        type=ReminderType.PLANNED_HEAT,
        related_id=breeding.id,
    )]


def generate_planned_heat_reminders(
    snapshot: DomainSnapshot,
    today: date,
    rules: Optional[ReminderRules] = None
) -> List[ReminderCandidate]:
    """Reminders for expected heats on planned breedings"""
    rules = _rules(rules)
    return _evaluate_each(
        "planned-heat",
        snapshot.planned_breedings,
        lambda breeding: _planned_heat_reminder(breeding, today, rules),
    )


# =============================================================================
# BIRTHDAYS
# =============================================================================

def _anniversary(born: date, year: int) -> date:
    try:
        return born.replace(year=year)
    except ValueError:
        # 29 February in a non-leap year
        return date(year, 2, 28)


def next_birthday(born: date, today: date) -> date:
    """Next occurrence of a birth date's month/day, today included"""
    this_year = _anniversary(born, today.year)
    if this_year >= today:
        return this_year
    return _anniversary(born, today.year + 1)


def _birthday_reminder(dog: Dog, today: date, rules: ReminderRules) -> List[ReminderCandidate]:
    if not dog.date_of_birth:
        return []

    birthday = next_birthday(dog.date_of_birth, today)
    age = birthday.year - dog.date_of_birth.year
    if age <= 0:
        return []

    days_until = (birthday - today).days
    if not 0 <= days_until <= rules.birthday_window_max_days:
        return []

    description = (
        f"{dog.name} turns {age} today!" if days_until == 0
        else f"{dog.name} turns {age} in {_days(days_until)}"
    )

    return [ReminderCandidate(
        id=reminder_id_for(ReminderType.BIRTHDAY, dog.id, birthday),
        title=f"{dog.name}'s Birthday",
        description=description,
        due_date=birthday,
        priority=ReminderPriority.MEDIUM,
        type=ReminderType.BIRTHDAY,
        related_id=dog.id,
    )]


def generate_birthday_reminders(
    snapshot: DomainSnapshot,
    today: date,
    rules: Optional[ReminderRules] = None
) -> List[ReminderCandidate]:
    """Upcoming dog birthdays"""
    rules = _rules(rules)
    return _evaluate_each("birthday", snapshot.dogs, lambda dog: _birthday_reminder(dog, today, rules))


# =============================================================================
# LITTER MILESTONES
# =============================================================================

def _litter_reminders(litter: Litter, today: date) -> List[ReminderCandidate]:
    if litter.archived or not litter.date_of_birth:
        return []

    age = (today - litter.date_of_birth).days
    candidates = []

    for milestone in LITTER_MILESTONES:
        if not milestone.min_age <= age <= milestone.max_age:
            continue

        due = litter.date_of_birth + timedelta(days=milestone.due_offset)
        candidates.append(ReminderCandidate(
            id=reminder_id_for(ReminderType.LITTER_MILESTONE, litter.id, due, qualifier=milestone.key),
            title=milestone.title.format(name=litter.name),
            description=milestone.description,
            due_date=due,
            priority=ReminderPriority.MEDIUM,
            type=ReminderType.LITTER_MILESTONE,
            related_id=litter.id,
        ))

    return candidates


def generate_litter_reminders(
    snapshot: DomainSnapshot,
    today: date,
    rules: Optional[ReminderRules] = None
) -> List[ReminderCandidate]:
    """Puppy care milestones for active litters"""
    return _evaluate_each("litter", snapshot.litters, lambda litter: _litter_reminders(litter, today))


# =============================================================================
# GENERAL / AGGREGATE
# =============================================================================

def _no_litters_this_year(snapshot: DomainSnapshot, today: date, rules: ReminderRules) -> List[ReminderCandidate]:
    if not any(dog.is_female for dog in snapshot.dogs):
        return []

    if any(l.date_of_birth and l.date_of_birth.year == today.year for l in snapshot.litters):
        return []

    year_end = date(today.year, 12, 31)
    return [ReminderCandidate(
        id=reminder_id_for(ReminderType.GENERAL, None, year_end, qualifier="no-litters"),
        title=f"No Litters Logged in {today.year}",
        description="Record this year's litters to keep breeding statistics accurate",
        due_date=year_end,
        priority=ReminderPriority.LOW,
        type=ReminderType.GENERAL,
    )]


def _missing_heat_records(snapshot: DomainSnapshot, today: date, rules: ReminderRules) -> List[ReminderCandidate]:
    missing = [dog for dog in snapshot.dogs if dog.is_female and not dog.heat_history]
    if not missing:
        return []

    year_end = date(today.year, 12, 31)
    names = ", ".join(dog.name for dog in missing)
    return [ReminderCandidate(
        id=reminder_id_for(ReminderType.GENERAL, None, year_end, qualifier="missing-heat-records"),
        title="Record Heat Cycles",
        description=f"{len(missing)} female dog{'s' if len(missing) != 1 else ''} without heat records: {names}",
        due_date=year_end,
        priority=ReminderPriority.LOW,
        type=ReminderType.GENERAL,
    )]


def _whelping_reminder(pregnancy: Pregnancy, today: date, rules: ReminderRules) -> List[ReminderCandidate]:
    if pregnancy.status != PregnancyStatus.ACTIVE:
        return []

    due = pregnancy.expected_due_date
    if due is None and pregnancy.mating_date is not None:
        due = pregnancy.mating_date + timedelta(days=rules.gestation_days)
    if due is None:
        return []

    days_until = (due - today).days
    if not 0 <= days_until <= rules.whelping_window_max_days:
        return []

    return [ReminderCandidate(
        id=reminder_id_for(ReminderType.GENERAL, pregnancy.id, due, qualifier="whelping"),
        title=f"Whelping Approaching for {pregnancy.female_name}",
        description=(
            "Puppies are due today" if days_until == 0
            else f"Puppies due in {_days(days_until)}; prepare the whelping area"
        ),
        due_date=due,
        priority=ReminderPriority.LOW,
        type=ReminderType.GENERAL,
        related_id=pregnancy.id,
    )]


def generate_general_reminders(
    snapshot: DomainSnapshot,
    today: date,
    rules: Optional[ReminderRules] = None
) -> List[ReminderCandidate]:
    """Reminders about the kennel as a whole"""
    rules = _rules(rules)

    aggregate_rules = (_no_litters_this_year, _missing_heat_records)
    candidates = _evaluate_each(
        "general",
        aggregate_rules,
        lambda rule: rule(snapshot, today, rules),
    )

    candidates.extend(_evaluate_each(
        "whelping",
        snapshot.pregnancies,
        lambda pregnancy: _whelping_reminder(pregnancy, today, rules),
    ))

    return candidates


# =============================================================================
# SOURCE PRIORITY
# =============================================================================

# System sources in merge priority order; custom reminders always come first
SYSTEM_SOURCES: Tuple[Tuple[str, Generator], ...] = (
    ("heat", generate_heat_reminders),
    ("litter", generate_litter_reminders),
    ("general", generate_general_reminders),
    ("planned-heat", generate_planned_heat_reminders),
    ("birthday", generate_birthday_reminders),
    ("vaccination", generate_vaccination_reminders),
)
