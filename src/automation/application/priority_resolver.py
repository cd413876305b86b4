"""Selection of the single rule that fires for a triggering event."""

from src.automation.domain.models import MatchResult, Rule


class PriorityResolver:
    """
    Pick one winner among the matching rules of an owner.

    Ranking is ``(priority DESC, created_at DESC)``. Only the winner executes;
    every other match is dropped for this event even when it targets other
    actuators.
    """

    @staticmethod
    def rank(rules: list[Rule]) -> list[Rule]:
        return sorted(rules, key=lambda r: (r.priority, r.created_at, r.id), reverse=True)

    def resolve(self, match_results: list[MatchResult]) -> Rule | None:
        candidates = [m.rule for m in match_results if m.matched and m.rule.is_active]
        if not candidates:
            return None
        return self.rank(candidates)[0]

    def losers(self, match_results: list[MatchResult], winner: Rule | None) -> list[Rule]:
        """Matching rules that were not selected, in rank order."""
        if winner is None:
            return []
        candidates = [m.rule for m in match_results if m.matched and m.rule.is_active and m.rule.id != winner.id]
        return self.rank(candidates)
