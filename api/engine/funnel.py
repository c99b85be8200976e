"""
Funnel (pipeline) Calculator: announce -> attract -> induce -> propose -> sell.

Consumes the delta-adjusted article set. Per-article deltas are summed raw,
negatives included. Stages that do not come out strictly positive are left
out of the stage list; rates fall back to 0 when their denominator is not
positive and are never clamped to [0, 100].
"""

from typing import Optional, Sequence

import structlog

from api.config import DEFAULT_PROPOSAL_CLASSIFICATION_NAME
from api.engine.snapshots import note_sales, value_of
from api.models.articles import Classification
from api.models.enums import FUNNEL_STAGE_LABELS, Channel, FunnelStageName
from api.models.rollup import ArticleDelta, FunnelRates, FunnelResult, FunnelStage

logger = structlog.get_logger()

# Attraction rate above which the publishing platform out-draws the social network
NOTE_DOMINANCE_RATE = 50.0


def _rate(numerator: float, denominator: float) -> float:
    return numerator / denominator * 100 if denominator > 0 else 0.0


class FunnelCalculator:
    """
    Five-stage acquisition funnel with conversion rates.

    Attributes:
        proposal_classification_name: Exact name of the primary classification
            whose articles make up the propose and sell stages
    """

    def __init__(self, proposal_classification_name: str = DEFAULT_PROPOSAL_CLASSIFICATION_NAME):
        self.proposal_classification_name = proposal_classification_name
        self.logger = structlog.get_logger()

    def find_proposal_classification(
        self, classifications: Sequence[Classification]
    ) -> Optional[Classification]:
        """First classification whose name matches exactly, if any."""
        for classification in classifications:
            if classification.name == self.proposal_classification_name:
                return classification
        return None

    def compute(
        self,
        articles: Sequence[ArticleDelta],
        classifications: Sequence[Classification],
    ) -> FunnelResult:
        """
        Compute stage values and rates.

        Args:
            articles: Delta rows (their snapshots already restricted to the range)
            classifications: Primary classifications, to locate the proposal tag

        Returns:
            FunnelResult with non-empty stages in funnel order
        """
        impressions = sum(a.lifetime_x.impressions for a in articles)
        attract = sum(a.note_views_change for a in articles)
        announce = impressions + attract
        induce = sum(a.note_likes_change for a in articles)

        proposal = self.find_proposal_classification(classifications)
        proposal_articles = (
            [a for a in articles if a.classification_id == proposal.id] if proposal else []
        )
        propose = sum(a.note_views_change for a in proposal_articles)
        sell = sum(
            value_of(snapshot, note_sales)
            for a in proposal_articles
            for snapshot in a.daily_snapshots
        )

        values = {
            FunnelStageName.ANNOUNCE: announce,
            FunnelStageName.ATTRACT: attract,
            FunnelStageName.INDUCE: induce,
            FunnelStageName.PROPOSE: propose,
            FunnelStageName.SELL: sell,
        }
        stages = [
            FunnelStage(stage=name, label=FUNNEL_STAGE_LABELS[name], value=value)
            for name, value in values.items()
            if value > 0
        ]

        attraction_rate = _rate(attract, announce)
        rates = FunnelRates(
            attraction_rate=attraction_rate,
            inducement_rate=_rate(induce, attract),
            sales_rate=_rate(sell, propose),
            dominant_channel=Channel.NOTE if attraction_rate > NOTE_DOMINANCE_RATE else Channel.X,
        )

        if proposal is None:
            self.logger.debug(
                "proposal_classification_missing",
                name=self.proposal_classification_name,
            )
        self.logger.info(
            "funnel_computed",
            stages=[s.stage.value for s in stages],
            attraction_rate=round(rates.attraction_rate, 2),
            inducement_rate=round(rates.inducement_rate, 2),
            sales_rate=round(rates.sales_rate, 2),
        )
        return FunnelResult(stages=stages, rates=rates)
