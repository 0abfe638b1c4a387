from __future__ import annotations

from bisect import bisect_right

from reviewmap.schemas.profiles import RankInfo

# (threshold, tier label, avatar frame asset); ascending by threshold.
RANK_TABLE: tuple[tuple[int, str, str | None], ...] = (
    (0, "Newcomer", None),
    (5, "Explorer", "frames/explorer.svg"),
    (15, "Critic", "frames/critic.svg"),
    (40, "Expert", "frames/expert.svg"),
    (100, "Legend", "frames/legend.svg"),
)

_THRESHOLDS = [row[0] for row in RANK_TABLE]


def rank_for(total_likes: int | None) -> RankInfo:
    """Highest tier whose threshold does not exceed ``total_likes``.

    Negative or missing totals count as zero.
    """
    likes = max(0, int(total_likes or 0))
    threshold, label, badge = RANK_TABLE[bisect_right(_THRESHOLDS, likes) - 1]
    return RankInfo(tier_label=label, threshold=threshold, badge_asset=badge)
