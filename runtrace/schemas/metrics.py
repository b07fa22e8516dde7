"""Token and cost counters attached to a run."""

from pydantic import BaseModel


class Metrics(BaseModel):
    """Optional usage counters for a run. All fields are plain values."""

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None
    prompt_cost: float | None = None
    completion_cost: float | None = None
    total_cost: float | None = None

    def with_tokens(self, prompt: int, completion: int) -> "Metrics":
        return self.model_copy(
            update={
                "prompt_tokens": prompt,
                "completion_tokens": completion,
                "total_tokens": prompt + completion,
            }
        )

    def with_costs(self, prompt: float, completion: float) -> "Metrics":
        return self.model_copy(
            update={
                "prompt_cost": prompt,
                "completion_cost": completion,
                "total_cost": prompt + completion,
            }
        )
