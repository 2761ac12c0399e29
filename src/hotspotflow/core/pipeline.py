"""Linear pipelines of unit-collection transformations."""

from abc import ABC, abstractmethod
from collections.abc import Callable

from hotspotflow.core.schema import UnitMetadata, UnitSchema
from hotspotflow.core.unit_frame import UnitFrame
from hotspotflow.core.utils import get_logger

logger = get_logger(__name__)


class Step(ABC):
    """
    One stage of an analysis.

    Steps hold configuration only. ``run`` receives a UnitFrame and hands
    back a new one; the input frame is never modified.
    """

    @abstractmethod
    def run(self, unit_frame: UnitFrame) -> UnitFrame:
        """Apply the stage to *unit_frame*."""
        raise NotImplementedError

    @property
    def name(self) -> str:
        """Name used in logs and pipeline descriptions."""
        return self.__class__.__name__

    def __repr__(self) -> str:
        """String representation of the step."""
        return f"{self.name}()"


class Pipeline:
    """
    Ordered chain of steps over a unit collection.

    Every stage completes before the next one starts. The first failure
    stops the run and is re-raised unchanged after being logged.
    """

    def __init__(self, steps: list[Step]) -> None:
        """
        Initialize a pipeline.

        Args:
            steps: Steps to apply, first to last
        """
        self.steps = steps
        self._last_schema: UnitSchema | None = None
        self._last_metadata: UnitMetadata | None = None
        logger.info(f"Pipeline assembled: {self.describe()}")

    def describe(self) -> str:
        """Arrow-joined step names."""
        return " -> ".join(step.name for step in self.steps)

    def run(self, unit_frame: UnitFrame) -> UnitFrame:
        """
        Apply every step in order.

        Args:
            unit_frame: Collection to transform

        Returns:
            Output of the final step (the input itself for an empty pipeline)

        Raises:
            TypeError: If a step returns something other than a UnitFrame
            ValueError: If a step drops the id/geometry columns or feature provenance
        """
        total = len(self.steps)
        logger.info(
            f"Running {total} step(s) on dataset '{unit_frame.metadata.dataset_name}'"
        )
        current = unit_frame
        self._last_schema = current.schema
        self._last_metadata = current.metadata

        for position, step in enumerate(self.steps, 1):
            logger.info(f"Step {position}/{total}: {step.name}")
            try:
                produced = step.run(current)
                if not isinstance(produced, UnitFrame):
                    raise TypeError(
                        f"Step {step.name} returned {type(produced).__name__} instead of UnitFrame"
                    )

                issues = current.schema.compatibility_issues(produced.schema)
                if issues:
                    summary = "; ".join(issues)
                    logger.error("Step %s broke the unit schema: %s", step.name, summary)
                    raise ValueError(f"Step {step.name} produced incompatible schema: {summary}")
            except Exception as e:
                logger.error(f"Step {position}/{total} ({step.name}) failed: {e}")
                raise

            current = produced
            self._last_schema = current.schema
            self._last_metadata = current.metadata

        logger.info(f"Pipeline finished: {current.count()} units")
        return current

    def add_step(self, step: Step) -> "Pipeline":
        """Append *step* and return the pipeline for chaining."""
        self.steps.append(step)
        return self

    def __repr__(self) -> str:
        """String representation of the pipeline."""
        return f"Pipeline({self.describe()})"

    def __len__(self) -> int:
        """Number of steps."""
        return len(self.steps)

    @property
    def last_schema(self) -> UnitSchema | None:
        """Schema of the most recent successful step output."""
        return self._last_schema

    @property
    def last_metadata(self) -> UnitMetadata | None:
        """Metadata of the most recent successful step output."""
        return self._last_metadata


class LambdaStep(Step):
    """Step backed by a plain function, for one-off transformations."""

    def __init__(self, fn: Callable[[UnitFrame], UnitFrame], name: str | None = None) -> None:
        """
        Initialize a lambda step.

        Args:
            fn: Function taking and returning a UnitFrame
            name: Label used in logs (defaults to "LambdaStep")
        """
        self.fn = fn
        self._name = name or "LambdaStep"

    @property
    def name(self) -> str:
        """Label given at construction."""
        return self._name

    def run(self, unit_frame: UnitFrame) -> UnitFrame:
        """Call the wrapped function."""
        return self.fn(unit_frame)

    def __repr__(self) -> str:
        """String representation."""
        return f"LambdaStep({self._name})"
