"""ASVS level classification policy."""

from dataclasses import dataclass, field

from asvstrack.errors import ValidationError

DEFAULT_THRESHOLDS: dict[str, float] = {"L1": 0.0, "L2": 50.0, "L3": 90.0}


@dataclass
class LevelPolicy:
    """Monotonic mapping from overall validity percentage to a level label.

    ``thresholds`` maps a label to the minimum percentage needed to hold it.
    Labels are ranked by threshold, so a higher percentage never yields a
    lower level.
    """

    thresholds: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_THRESHOLDS))

    def __post_init__(self):
        if not self.thresholds:
            raise ValidationError("Level policy needs at least one threshold")
        for label, minimum in self.thresholds.items():
            if not 0.0 <= float(minimum) <= 100.0:
                raise ValidationError(
                    f"Threshold for '{label}' must be within 0..100, got {minimum}"
                )
        self._ranked = sorted(
            ((float(minimum), label) for label, minimum in self.thresholds.items()),
            key=lambda item: item[0],
        )

    @property
    def base_level(self) -> str:
        """Label reported when no threshold is met."""
        return self._ranked[0][1]

    def classify(self, percentage: float) -> str:
        """Return the highest level whose minimum percentage is met."""
        acquired = self.base_level
        for minimum, label in self._ranked:
            if percentage >= minimum:
                acquired = label
            else:
                break
        return acquired

    @classmethod
    def from_settings(cls) -> "LevelPolicy":
        from config.settings import settings

        return cls(thresholds=dict(settings.asvs_level_thresholds))
