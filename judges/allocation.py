"""Judge allocation: conflict-free panels with a designated chair."""

import logging
import random
from dataclasses import dataclass, field

from tournaments.draw import normalize_institution
from tournaments.models import ExperienceTier, Judge, Room, Team

logger = logging.getLogger(__name__)

# Highest tier first
EXPERIENCE_PRIORITY = [
    ExperienceTier.SENIOR,
    ExperienceTier.EXPERIENCED,
    ExperienceTier.INTERMEDIATE,
    ExperienceTier.NOVICE,
]


def conflict_institutions(judge: Judge) -> set[str]:
    """Institutions a judge may not adjudicate, including their own."""
    conflicts = {normalize_institution(i) for i in judge.conflict_institutions}
    conflicts.add(normalize_institution(judge.institution))
    conflicts.discard("")
    return conflicts


def has_conflict(judge: Judge, teams: list[Team]) -> bool:
    """Check if a judge has a conflict with any team in the room."""
    conflicts = conflict_institutions(judge)
    if not conflicts:
        return False
    return any(normalize_institution(team.institution) in conflicts for team in teams)


@dataclass
class AllocationReport:
    """What the allocator did, for surfacing to organizers."""

    assigned: dict[str, list[int]] = field(default_factory=dict)  # room name -> judge ids
    warnings: list[str] = field(default_factory=list)


class JudgeAllocator:
    """Assigns judges to rooms from an experience-ordered pool."""

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def build_pool(self, judges: list[Judge]) -> list[Judge]:
        """Order judges senior to novice, shuffled within each tier."""
        pool: list[Judge] = []
        for tier in EXPERIENCE_PRIORITY:
            tier_judges = [j for j in judges if j.experience == tier and j.available]
            self.rng.shuffle(tier_judges)
            pool.extend(tier_judges)
        return pool

    def allocate_judges(
        self,
        rooms: list[Room],
        available_judges: list[Judge],
        judges_per_room: int,
        teams_by_id: dict[int, Team],
    ) -> AllocationReport:
        """Seat up to ``judges_per_room`` judges in each room, in place.

        The first judge accepted for a room becomes its chair. Rooms get
        no judge when the pool is empty or every judge is conflicted;
        both cases are reported as warnings, not errors.
        """
        report = AllocationReport()
        pool = self.build_pool(available_judges)

        if not pool:
            logger.warning("No judges available for allocation")
            report.warnings.append("no_judges_available")
            for room in rooms:
                room.judge_ids = []
                room.chair_id = None
            return report

        pool_size = len(pool)
        max_per_room = min(judges_per_room, pool_size)
        judge_index = 0

        for room in rooms:
            room_teams = [teams_by_id[tid] for tid in room.team_ids if tid in teams_by_id]
            assigned: list[int] = []
            attempts = 0

            while len(assigned) < max_per_room and attempts < pool_size * 2:
                judge = pool[judge_index % pool_size]
                judge_index += 1
                attempts += 1

                if judge.id not in assigned and not has_conflict(judge, room_teams):
                    assigned.append(judge.id)

                # One full pass is enough once the room has a judge
                if assigned and attempts > pool_size:
                    break

            room.judge_ids = assigned
            room.chair_id = assigned[0] if assigned else None
            report.assigned[room.room_name] = assigned

            if not assigned:
                logger.warning(f"{room.room_name}: every available judge is conflicted")
                report.warnings.append(f"no_eligible_judge:{room.room_name}")
            elif len(assigned) < judges_per_room:
                logger.info(
                    f"{room.room_name}: seated {len(assigned)} of {judges_per_room} judges"
                )

        logger.info(
            f"Allocated judges to {len(rooms)} rooms from a pool of {pool_size}"
        )
        return report
