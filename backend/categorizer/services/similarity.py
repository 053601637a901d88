"""Find transactions that look like the same merchant or recurring payment.

Bank descriptions spell the same merchant many ways ("VDC-TESCO",
"TESCO STORES 4521"). Matching runs in two stages: a cheap substring
search on a merchant fragment narrows the corpus, then a fuzzy score on the
full descriptions decides.
"""

import re
from collections.abc import Iterable

import structlog
from rapidfuzz import fuzz
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from categorizer.config import settings
from categorizer.models.transaction import Transaction

logger = structlog.get_logger()

# "VDC-TESCO", "POS-SPAR": card-scheme prefix glued to the merchant
MERCHANT_CODE_RE = re.compile(r"[A-Z]+-[A-Z]+")
# "TESCO STORES", "TESCO STORES 4521"
STORE_NAME_RE = re.compile(r"[A-Z]+\s+[A-Z]+(?:\s+\d+)?")
_FRAGMENT_SEPARATOR_RE = re.compile(r"[\s-]")


def merchant_code(description: str | None) -> str | None:
    if not description:
        return None
    match = MERCHANT_CODE_RE.search(description)
    return match.group(0) if match else None


def extract_merchant_token(description: str) -> str:
    """Best guess at the merchant part of a description."""
    code = merchant_code(description)
    if code:
        return code
    store = STORE_NAME_RE.search(description)
    if store:
        return store.group(0)
    return " ".join(description.split()[:2])


def search_fragment(token: str) -> str:
    return _FRAGMENT_SEPARATOR_RE.split(token, maxsplit=1)[0]


def similarity_score(first: str, second: str) -> float:
    """Normalized similarity in [0, 1] of two descriptions.

    Case and word order are ignored: "AMAZON PRIME" and "PRIME AMAZON" score 1.0.
    """
    return fuzz.token_sort_ratio(first.lower(), second.lower()) / 100.0


def _description_fields(transaction) -> list[str]:
    return [
        d
        for d in (
            transaction.description1,
            transaction.description2,
            transaction.description3,
        )
        if d
    ]


def _mentions(transaction, fragment: str) -> bool:
    needle = fragment.lower()
    return any(needle in d.lower() for d in _description_fields(transaction))


def filter_similar(
    reference,
    candidates: Iterable,
    threshold: float | None = None,
) -> list:
    """Keep the candidates whose primary description resembles the reference's.

    A candidate passes on a fuzzy score above ``threshold``, or when both
    descriptions carry the same merchant code even if trailing references
    drag the score down.
    """
    if threshold is None:
        threshold = settings.similarity_threshold

    description = reference.description1 or ""
    reference_code = merchant_code(description)

    accepted = []
    for candidate in candidates:
        candidate_description = candidate.description1 or ""
        if reference_code is not None and merchant_code(candidate_description) == reference_code:
            accepted.append(candidate)
            continue
        if similarity_score(description, candidate_description) > threshold:
            accepted.append(candidate)
    return accepted


def find_similar(reference, corpus: Iterable, threshold: float | None = None) -> list:
    """In-memory version of the two-stage search.

    The reference itself is not excluded; callers skip it.
    """
    description = reference.description1 or ""
    if not description.strip():
        return []

    fragment = search_fragment(extract_merchant_token(description))
    coarse = [txn for txn in corpus if _mentions(txn, fragment)]
    return filter_similar(reference, coarse, threshold)


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SimilarityFinder:
    """Two-stage search with the coarse stage pushed down to the database."""

    def __init__(self, db: AsyncSession, threshold: float | None = None):
        self.db = db
        self.threshold = threshold

    async def find_similar(self, reference: Transaction) -> list[Transaction]:
        description = reference.description1 or ""
        if not description.strip():
            return []

        token = extract_merchant_token(description)
        fragment = search_fragment(token)
        pattern = f"%{escape_like(fragment)}%"

        result = await self.db.execute(
            select(Transaction)
            .where(
                or_(
                    Transaction.description1.ilike(pattern, escape="\\"),
                    Transaction.description2.ilike(pattern, escape="\\"),
                    Transaction.description3.ilike(pattern, escape="\\"),
                )
            )
            .order_by(Transaction.id)
        )
        coarse = list(result.scalars().all())
        similar = filter_similar(reference, coarse, self.threshold)

        logger.debug(
            "similar_transactions_found",
            reference_id=reference.id,
            merchant_token=token,
            coarse=len(coarse),
            similar=len(similar),
        )
        return similar
