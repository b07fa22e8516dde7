"""Checks applied to a run before it is reported."""

from runtrace.exceptions import ValidationError
from runtrace.schemas.run import Run


def validate_run(run: Run) -> None:
    """
    Reject runs the backend would refuse.

    Raises:
        ValidationError: If the name is blank or inputs/outputs are not objects
    """
    if not run.name.strip():
        raise ValidationError("Run name cannot be empty", details={"run_id": str(run.id)})

    if not isinstance(run.inputs, dict):
        raise ValidationError("Run inputs must be an object", details={"run_id": str(run.id)})

    if run.outputs is not None and not isinstance(run.outputs, dict):
        raise ValidationError("Run outputs must be an object", details={"run_id": str(run.id)})
