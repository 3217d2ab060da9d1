"""
Insight generation engine that turns statistical and spatial results into
ranked, plain-English findings.

Each analyzer returns StatisticalInsight objects; the aggregator filters
weak findings and keeps the most significant ones.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Literal, Optional

from core.clustering import ClusterResult
from core.spatial import SpatialAnalysisResult
from core.statistics import (
    DescriptiveStats,
    NumericRecord,
    describe,
    extract_numeric_records,
    fit_trend,
    iqr_outliers,
    looks_temporal,
    pareto_concentration,
)

InsightKind = Literal["statistical", "trend", "outlier", "distribution"]

DEFAULT_INSIGHT_LIMIT = 5
DEFAULT_MIN_CONFIDENCE = 30.0
TREND_SLOPE_THRESHOLD = 0.1
HIGH_VARIABILITY_CV = 0.3
LOW_VARIABILITY_CV = 0.15


@dataclass
class StatisticalInsight:
    """A single quantitative finding."""

    kind: InsightKind
    description: str
    confidence: float  # 0-100
    significance: float  # 0-1
    data: Dict[str, Any] = field(default_factory=dict)


def insufficient_data_insight() -> StatisticalInsight:
    return StatisticalInsight(
        kind="statistical",
        description="Insufficient data available for statistical analysis",
        confidence=0.0,
        significance=0.0,
    )


class InsightGenerator:
    """
    Generates ranked insights from record collections and translates spatial
    results into narratives for non-technical users.
    """

    @staticmethod
    def _label(record: NumericRecord) -> str:
        return record.name or "Unknown"

    @staticmethod
    def statistical_insights(
        stats: DescriptiveStats,
        records: List[NumericRecord],
    ) -> List[StatisticalInsight]:
        """
        Extremes, average and variability of the sample.

        Args:
            stats: DescriptiveStats for the record values
            records: Records the statistics were computed from

        Returns:
            List of insights
        """
        insights: List[StatisticalInsight] = []

        max_record = next((r for r in records if r.value == stats.max), None)
        min_record = next((r for r in records if r.value == stats.min), None)

        if max_record:
            insights.append(StatisticalInsight(
                kind="statistical",
                description=f"Highest value: {InsightGenerator._label(max_record)} ({stats.max:,.2f})",
                confidence=95.0,
                significance=0.9,
                data={"name": max_record.name, "value": stats.max},
            ))

        if min_record and stats.max != stats.min:
            insights.append(StatisticalInsight(
                kind="statistical",
                description=f"Lowest value: {InsightGenerator._label(min_record)} ({stats.min:,.2f})",
                confidence=95.0,
                significance=0.8,
                data={"name": min_record.name, "value": stats.min},
            ))

        insights.append(StatisticalInsight(
            kind="statistical",
            description=f"Average value: {stats.mean:,.1f}",
            confidence=90.0,
            significance=0.7,
            data={"mean": stats.mean, "median": stats.median, "std_dev": stats.std_dev},
        ))

        # Skipped when the mean is zero and the CV is undefined
        cv = stats.coefficient_of_variation
        if cv is not None:
            spread = abs(cv)
            if spread > HIGH_VARIABILITY_CV:
                insights.append(StatisticalInsight(
                    kind="statistical",
                    description=(
                        f"High variability detected (CV: {spread * 100:.1f}%) - "
                        f"values show significant spread"
                    ),
                    confidence=85.0,
                    significance=0.8,
                    data={"cv": cv},
                ))
            elif spread < LOW_VARIABILITY_CV:
                insights.append(StatisticalInsight(
                    kind="statistical",
                    description=(
                        f"Low variability detected (CV: {spread * 100:.1f}%) - "
                        f"values are relatively consistent"
                    ),
                    confidence=85.0,
                    significance=0.6,
                    data={"cv": cv},
                ))

        return insights

    @staticmethod
    def trend_insights(
        records: List[NumericRecord],
        temporal: Optional[bool] = None,
    ) -> List[StatisticalInsight]:
        """
        Linear trend over record order.

        Args:
            records: Records in their natural (time) order
            temporal: Force (True) or suppress (False) trend analysis; None
                decides from the record names

        Returns:
            Zero or one trend insight
        """
        if temporal is None:
            temporal = looks_temporal(records)
        if not temporal:
            return []

        trend = fit_trend([r.value for r in records])
        if trend is None or abs(trend.slope) <= TREND_SLOPE_THRESHOLD:
            return []

        return [StatisticalInsight(
            kind="trend",
            description=(
                f"{trend.strength} {trend.direction} trend detected "
                f"(R² = {trend.r_squared * 100:.1f}%)"
            ),
            confidence=float(round(abs(trend.correlation) * 100)),
            significance=abs(trend.correlation),
            data={
                "slope": trend.slope,
                "intercept": trend.intercept,
                "correlation": trend.correlation,
                "r_squared": trend.r_squared,
                "p_value": trend.p_value,
            },
        )]

    @staticmethod
    def outlier_insights(records: List[NumericRecord]) -> List[StatisticalInsight]:
        result = iqr_outliers(records)
        if result is None or not result.outliers:
            return []

        extreme = result.most_extreme
        count = len(result.outliers)
        suffix = "" if count == 1 else f" ({count} outliers flagged in total)"
        return [StatisticalInsight(
            kind="outlier",
            description=(
                f"Outlier detected: {InsightGenerator._label(extreme)} ({extreme.value:,.2f}) "
                f"significantly differs from typical values{suffix}"
            ),
            confidence=80.0,
            significance=0.7,
            data={
                "name": extreme.name,
                "value": extreme.value,
                "outlier_count": count,
                "lower_fence": result.lower_fence,
                "upper_fence": result.upper_fence,
            },
        )]

    @staticmethod
    def distribution_insights(records: List[NumericRecord]) -> List[StatisticalInsight]:
        result = pareto_concentration([r.value for r in records])
        if result is None or not result.is_concentrated:
            return []

        return [StatisticalInsight(
            kind="distribution",
            description=(
                f"Pareto distribution detected: {result.percentage:.0f}% of items account "
                f"for {result.value_share * 100:.0f}% of total value"
            ),
            confidence=85.0,
            significance=0.8,
            data={
                "pareto_percentage": result.percentage,
                "items_needed": result.items_needed,
                "total_items": result.total_items,
            },
        )]

    @staticmethod
    def generate_insights(
        records: Optional[Iterable[Dict[str, Any]]],
        temporal: Optional[bool] = None,
        limit: int = DEFAULT_INSIGHT_LIMIT,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    ) -> List[StatisticalInsight]:
        """
        Run every record analyzer and keep the most significant findings.

        Args:
            records: Raw dict rows
            temporal: Passed to trend analysis (None = infer from names)
            limit: Maximum number of insights returned
            min_confidence: Insights at or below this confidence are dropped

        Returns:
            Insights sorted by descending significance, or a single
            "insufficient data" insight when no numeric values are present
        """
        numeric = extract_numeric_records(records)
        stats = describe([r.value for r in numeric])
        if stats is None:
            return [insufficient_data_insight()]

        insights: List[StatisticalInsight] = []
        insights.extend(InsightGenerator.statistical_insights(stats, numeric))
        insights.extend(InsightGenerator.trend_insights(numeric, temporal))
        insights.extend(InsightGenerator.outlier_insights(numeric))
        insights.extend(InsightGenerator.distribution_insights(numeric))

        kept = [i for i in insights if i.confidence > min_confidence]
        kept.sort(key=lambda i: i.significance, reverse=True)
        return kept[:limit]

    @staticmethod
    def describe_spatial_analysis(result: SpatialAnalysisResult) -> List[str]:
        """
        Generate plain-English findings from a spatial analysis.

        Args:
            result: SpatialAnalysisResult object

        Returns:
            List of insight strings
        """
        insights = []
        morans = result.morans_i
        verdict = "significant" if morans.p_value < 0.05 else "not significant"

        if result.pattern == "clustered":
            insights.append(
                f"Similar values cluster together geographically "
                f"(Moran's I = {morans.value:.3f}, {verdict}, p={morans.p_value:.4f})."
            )
        elif result.pattern == "dispersed":
            insights.append(
                f"Neighbouring locations tend to have dissimilar values "
                f"(Moran's I = {morans.value:.3f}, {verdict}, p={morans.p_value:.4f})."
            )
        else:
            insights.append(
                f"No strong spatial pattern across {result.point_count} locations "
                f"(Moran's I = {morans.value:.3f})."
            )

        if result.hotspots:
            insights.append(f"{len(result.hotspots)} hotspot(s) of high values surrounded by high values.")
        if result.coldspots:
            insights.append(f"{len(result.coldspots)} coldspot(s) of low values surrounded by low values.")
        if result.outliers:
            worst = max(result.outliers, key=lambda p: p.deviation or 0.0)
            label = worst.name or worst.id
            insights.append(
                f"⚠️ {len(result.outliers)} location(s) differ sharply from their neighbours; "
                f"largest deviation at {label} ({worst.deviation:,.2f})."
            )

        return insights

    @staticmethod
    def describe_clusters(result: ClusterResult) -> List[str]:
        insights: List[str] = []
        populated = [c for c in result.clusters if c.points]

        if not populated:
            insights.append("No clusters found with the current parameters.")
            return insights

        insights.append(
            f"Found {len(populated)} cluster(s) covering {sum(c.size for c in populated)} point(s)."
        )

        largest = max(populated, key=lambda c: c.size)
        insights.append(
            f"Largest cluster #{largest.id} has {largest.size} points centred at "
            f"({largest.center[0]:.4f}, {largest.center[1]:.4f}), mean value {largest.mean_value:,.2f}."
        )

        if result.noise:
            share = len(result.noise) / len(result.points) * 100
            insights.append(f"{len(result.noise)} point(s) ({share:.1f}%) are isolated noise.")

        return insights
