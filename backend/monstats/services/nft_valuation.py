from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

# Heuristic valuation thresholds (MON). These are tuning knobs against
# wash-traded or fabricated collections, not correctness guarantees.
MIN_FLOOR_PRICE = 0.001  # floors below this are treated as manipulated
MAX_HOLDING_COUNT_ERC721 = 100
MAX_HOLDING_COUNT_ERC1155 = 1_000  # semi-fungible editions routinely come in large counts
MIN_VOLUME_7D = 0.1  # reported but thinner than this = illiquid
MAX_SUPPLY_RATIO = 0.5  # holding more than half of an ERC721 collection
MIN_COLLECTION_SIZE = 10  # ERC721 collections smaller than this are not priced
MAX_COLLECTION_VALUE = 10_000.0
MAX_BAG_VALUE = 50_000.0

FUNGIBLE_LIKE_STANDARDS = {"erc1155"}


@dataclass(frozen=True)
class NftThresholds:
    min_floor_price: float = MIN_FLOOR_PRICE
    max_holding_count_erc721: int = MAX_HOLDING_COUNT_ERC721
    max_holding_count_erc1155: int = MAX_HOLDING_COUNT_ERC1155
    min_volume_7d: float = MIN_VOLUME_7D
    max_supply_ratio: float = MAX_SUPPLY_RATIO
    min_collection_size: int = MIN_COLLECTION_SIZE
    max_collection_value: float = MAX_COLLECTION_VALUE
    max_bag_value: float = MAX_BAG_VALUE


DEFAULT_THRESHOLDS = NftThresholds()


@dataclass
class NftHolding:
    name: str
    token_standard: str  # "erc721" | "erc1155"
    collection_size: int
    floor_price_7d: float
    volume_7d: Optional[float]  # None when the marketplace does not report it
    holding_count: int

    @property
    def is_fungible_like(self) -> bool:
        return self.token_standard.lower() in FUNGIBLE_LIKE_STANDARDS

    @classmethod
    def from_api(cls, raw: dict) -> "NftHolding":
        """Build from one entry of the marketplace user-collections response."""
        collection = raw.get("collection") or {}
        ownership = raw.get("ownership") or {}
        floor_sale = collection.get("floorSale") or {}
        volume = collection.get("volume") or {}

        volume_7d = volume.get("7day")
        return cls(
            name=collection.get("name") or collection.get("symbol") or "unknown",
            token_standard=(collection.get("contractKind") or "erc721").lower(),
            collection_size=int(collection.get("tokenCount") or 0),
            floor_price_7d=float(floor_sale.get("7day") or 0),
            volume_7d=float(volume_7d) if volume_7d is not None else None,
            # Listings without an ownership count are at least one token
            holding_count=int(ownership.get("tokenCount") or 1),
        )


def rejection_reason(holding: NftHolding, thresholds: NftThresholds = DEFAULT_THRESHOLDS) -> Optional[str]:
    """Return why a holding is excluded from the bag value, or None if it counts."""
    if holding.floor_price_7d < thresholds.min_floor_price:
        return f"floor price {holding.floor_price_7d} below {thresholds.min_floor_price}"

    max_count = (
        thresholds.max_holding_count_erc1155
        if holding.is_fungible_like
        else thresholds.max_holding_count_erc721
    )
    if holding.holding_count > max_count:
        return f"holding count {holding.holding_count} above {max_count}"

    if holding.volume_7d is not None and holding.volume_7d < thresholds.min_volume_7d:
        return f"7d volume {holding.volume_7d} below {thresholds.min_volume_7d}"

    if not holding.is_fungible_like:
        if holding.collection_size < thresholds.min_collection_size:
            return f"collection size {holding.collection_size} below {thresholds.min_collection_size}"
        ratio = holding.holding_count / holding.collection_size
        if ratio > thresholds.max_supply_ratio:
            return f"holds {ratio:.0%} of collection supply"

    value = holding.floor_price_7d * holding.holding_count
    if value > thresholds.max_collection_value:
        return f"value {value:.2f} above per-collection cap {thresholds.max_collection_value}"

    return None


def collection_value(holding: NftHolding, thresholds: NftThresholds = DEFAULT_THRESHOLDS) -> float:
    reason = rejection_reason(holding, thresholds)
    if reason:
        logger.warning(f"Suspicious NFT collection '{holding.name}' ignored: {reason}")
        return 0.0
    return holding.floor_price_7d * holding.holding_count


def calculate_nft_bag_value(
    holdings: list[NftHolding], thresholds: NftThresholds = DEFAULT_THRESHOLDS
) -> float:
    """Sum of accepted collection values, capped at the wallet-level ceiling."""
    total = sum(collection_value(h, thresholds) for h in holdings)
    if total > thresholds.max_bag_value:
        logger.warning(f"NFT bag value {total:.2f} capped at {thresholds.max_bag_value}")
        return thresholds.max_bag_value
    return total
