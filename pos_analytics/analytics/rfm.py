"""
RFM Customer Segmentation

Scores each purchasing customer 1-5 on Recency, Frequency and Monetary value
by rank position within the cohort:
    quintile = ceil(rank / cohort_size * 5)

Ranks are ascending and ties share the lowest rank. Recency is inverted so
the most recent buyers score 5; frequency and monetary are not, so the most
frequent and highest-spending customers score 5.

Combined score (3-15) to segment:
    >= 12 Champions, >= 10 Loyal Customers, >= 8 Potential Loyalists,
    >= 6 At Risk, else Lost
"""

from datetime import datetime
from typing import List, Optional, Sequence

import numpy as np
import polars as pl
from scipy import stats
import structlog

from pos_analytics.analytics.frames import customers_frame, transactions_frame
from pos_analytics.analytics.models import RFMScore, RFMSegment
from pos_analytics.query import QueryFilter, QueryInterface

logger = structlog.get_logger(__name__)

SEGMENT_THRESHOLDS = [
    (12, RFMSegment.CHAMPIONS),
    (10, RFMSegment.LOYAL),
    (8, RFMSegment.POTENTIAL),
    (6, RFMSegment.AT_RISK),
]


def quintile_scores(values: Sequence[float], reverse: bool = False) -> List[int]:
    """
    1-5 score of each value by its rank within ``values``.

    Args:
        values: One value per cohort member
        reverse: Score low values high (used for recency)
    """
    n = len(values)
    if n == 0:
        return []

    ranks = stats.rankdata(np.asarray(values, dtype=float), method="min").astype(int)
    scores = []
    for rank in ranks:
        quintile = (int(rank) * 5 + n - 1) // n
        scores.append(6 - quintile if reverse else quintile)
    return scores


def segment_for_score(rfm_score: int) -> RFMSegment:
    """Segment label of a combined RFM score"""
    for threshold, segment in SEGMENT_THRESHOLDS:
        if rfm_score >= threshold:
            return segment
    return RFMSegment.LOST


def segment_customers_rfm(
    query: QueryInterface,
    company_id: str,
    *,
    now: datetime,
) -> List[RFMScore]:
    """
    RFM scores for every active customer with a completed purchase.

    Args:
        query: Store to read customers and transactions from
        company_id: Company to analyse
        now: Reference time for recency

    Returns:
        One RFMScore per customer; empty when nobody has purchased
    """
    transactions = transactions_frame(
        query.fetch_transactions(QueryFilter(company_id=company_id))
    ).filter(pl.col("customer_id").is_not_null())

    customers = customers_frame(query.fetch_customers(company_id, active_only=True))

    rfm = (
        transactions.group_by("customer_id")
        .agg([
            pl.col("timestamp").max().alias("last_purchase"),
            pl.len().alias("frequency"),
            pl.col("total").sum().alias("monetary"),
        ])
        .join(customers, on="customer_id", how="inner")
        .sort("customer_id")
    )

    if rfm.height == 0:
        logger.debug("No purchasing customers for RFM", company_id=company_id)
        return []

    rows = list(rfm.iter_rows(named=True))
    recency = [(now - row["last_purchase"]).total_seconds() / 86400 for row in rows]
    frequency = [row["frequency"] for row in rows]
    monetary = [row["monetary"] for row in rows]

    r_scores = quintile_scores(recency, reverse=True)
    f_scores = quintile_scores(frequency)
    m_scores = quintile_scores(monetary)

    results = []
    for i, row in enumerate(rows):
        rfm_score = r_scores[i] + f_scores[i] + m_scores[i]
        results.append(RFMScore(
            customer_id=row["customer_id"],
            name=row["name"],
            email=row["email"],
            recency=recency[i],
            frequency=int(frequency[i]),
            monetary=float(monetary[i]),
            r_score=r_scores[i],
            f_score=f_scores[i],
            m_score=m_scores[i],
            rfm_score=rfm_score,
            segment=segment_for_score(rfm_score),
        ))

    logger.debug("RFM segmentation computed", company_id=company_id, customers=len(results))
    return results
