"""User preferences read once when a session is built."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Mapping


class ExitConfirmation(str, enum.Enum):
    ALWAYS = "always"
    IF_INCOMPLETE = "if-incomplete"
    NEVER = "never"


@dataclass(frozen=True, slots=True)
class UserPreferences:
    auto_advance_after_select: bool = False
    auto_advance_delay_ms: int = 1000
    disable_hotkeys: bool = False
    require_answer_before_next: bool = True
    return_to_unanswered: bool = True
    confirm_before_exit: ExitConfirmation = ExitConfirmation.IF_INCOMPLETE
    hide_timer: bool = False
    show_progress_grid: bool = True

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "UserPreferences":
        """
        Build preferences from the settings payload (camelCase keys).

        Unknown keys are ignored and values of the wrong type fall back to
        the defaults.
        """
        if not raw:
            return cls()
        defaults = cls()

        def flag(key: str, default: bool) -> bool:
            value = raw.get(key)
            return value if isinstance(value, bool) else default

        delay = raw.get("autoAdvanceDelayMs", raw.get("autoAdvanceDelay"))
        if not isinstance(delay, int) or isinstance(delay, bool) or delay < 0:
            delay = defaults.auto_advance_delay_ms

        try:
            confirm = ExitConfirmation(raw.get("confirmBeforeExit"))
        except ValueError:
            confirm = defaults.confirm_before_exit

        return cls(
            auto_advance_after_select=flag("autoAdvanceAfterSelect", defaults.auto_advance_after_select),
            auto_advance_delay_ms=delay,
            disable_hotkeys=flag("disableHotkeys", defaults.disable_hotkeys),
            require_answer_before_next=flag("requireAnswerBeforeNext", defaults.require_answer_before_next),
            return_to_unanswered=flag("returnToUnanswered", defaults.return_to_unanswered),
            confirm_before_exit=confirm,
            hide_timer=flag("hideTimer", defaults.hide_timer),
            show_progress_grid=flag("showProgressGrid", defaults.show_progress_grid),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "autoAdvanceAfterSelect": self.auto_advance_after_select,
            "autoAdvanceDelayMs": self.auto_advance_delay_ms,
            "disableHotkeys": self.disable_hotkeys,
            "requireAnswerBeforeNext": self.require_answer_before_next,
            "returnToUnanswered": self.return_to_unanswered,
            "confirmBeforeExit": self.confirm_before_exit.value,
            "hideTimer": self.hide_timer,
            "showProgressGrid": self.show_progress_grid,
        }
