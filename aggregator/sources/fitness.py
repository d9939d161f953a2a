"""
Fitness (workouts) data source.
"""

from aggregator.services.outcome import CallOutcome
from aggregator.sources.base import BaseSource, count_items


def decode_workout_count(payload) -> int:
    return count_items(payload, "workouts")


class FitnessSource(BaseSource):
    """Workouts service. Only the number of workouts is used."""

    SERVICE_ID = "fitness"

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    async def user_workout_count(
        self, user_id: str, auth_token: str | None
    ) -> CallOutcome:
        return await self._get(
            f"/api/workouts/user/{user_id}", auth_token, decode=decode_workout_count
        )

    async def workout_count(self, auth_token: str | None, limit: int) -> CallOutcome:
        return await self._get(
            "/api/workouts",
            auth_token,
            params={"limit": limit},
            decode=decode_workout_count,
        )
