"""Client profile resolution for generation requests."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from studio.ai.errors import ProfileNotFoundError
from studio.generation.contracts import ConstraintSet, ProgramRequest
from studio.storage.profiles_repo import ClientProfile, ProfilesRepository

logger = logging.getLogger(__name__)


def extract_constraints(profile: ClientProfile) -> ConstraintSet:
  """Map a client profile onto the filter's constraint set.

  Injury restrictions and physical limitations become exclusion keywords;
  the body part itself is only used when an injury lists no restrictions.
  """
  exclusions: list[str] = []
  for injury in profile.injuries:
    if injury.restrictions:
      exclusions.extend(injury.restrictions)
    elif injury.body_part:
      exclusions.append(injury.body_part)
  exclusions.extend(profile.physical_limitations)
  return ConstraintSet(
    experience_level=profile.experience_level,
    available_equipment=tuple(profile.available_equipment),
    exclusions=tuple(item for item in exclusions if item and item.strip()),
    aversions=tuple(item for item in profile.exercise_aversions if item and item.strip()),
  )


async def resolve_program_request(payload: dict[str, Any], profiles_repo: ProfilesRepository) -> ProgramRequest:
  """Build the normalized request, resolving constraints from a profile when one is referenced."""
  profile_id = payload.get("client_profile_id")
  if not profile_id:
    return ProgramRequest.from_payload(payload)

  profile = await profiles_repo.get_profile(str(profile_id))
  if profile is None:
    raise ProfileNotFoundError(f"Client profile not found: {profile_id}")

  logger.info("Resolved constraints from client profile %s", profile_id)
  request = ProgramRequest.from_payload(payload, constraints=extract_constraints(profile))
  return replace(request, primary_goal=profile.primary_goal, secondary_goals=tuple(profile.secondary_goals), client_profile_id=str(profile_id), training_location=profile.training_location or "gym")
