"""Tests for leaderboard sorting, search and pagination."""
import pytest
import pytest_asyncio

from conftest import addr, make_wallet
from monstats.services.leaderboard import (
    SORT_FIELDS,
    InvalidLeaderboardQuery,
    LeaderboardQuery,
    query_leaderboard,
)


def sample_wallets():
    # Insertion order defines id, which breaks ties
    return [
        make_wallet(addr(0xA1), total_score=40.0, tx_count=10, total_volume=5.0),
        make_wallet(addr(0xB2), total_score=90.0, tx_count=3, total_volume=50.0),
        make_wallet(addr(0xA3), total_score=40.0, tx_count=30, total_volume=0.5, is_day1_user=True),
        make_wallet(addr(0xC4), total_score=10.0, tx_count=3, total_volume=500.0),
        make_wallet(addr(0xAB5), total_score=75.5, tx_count=7, total_volume=0.0, longest_streak=4),
    ]


def rank_in_memory(wallets, query: LeaderboardQuery) -> tuple[list[str], int]:
    """Plain-Python ordering used to cross-check the SQL query: (page addresses, filtered total)."""
    query.validate()
    attr = SORT_FIELDS[query.sort_by]

    rows = list(wallets)
    if query.search:
        rows = [w for w in rows if query.search.lower() in w.wallet_address.lower()]

    # Stable sorts: id first so ties keep insertion order in both directions
    rows.sort(key=lambda w: w.id)
    rows.sort(key=lambda w: getattr(w, attr), reverse=query.sort_order == "desc")

    page_rows = rows[query.offset:query.offset + query.page_size]
    return [w.wallet_address for w in page_rows], len(rows)


@pytest_asyncio.fixture
async def seeded(db):
    wallets = sample_wallets()
    db.add_all(wallets)
    await db.commit()
    return wallets


def _ordered_correctly(values, direction):
    pairs = zip(values, values[1:])
    if direction == "desc":
        return all(a >= b for a, b in pairs)
    return all(a <= b for a, b in pairs)


class TestQueryValidation:

    def test_rejects_unknown_sort_field(self):
        with pytest.raises(InvalidLeaderboardQuery):
            LeaderboardQuery(sort_by="rank").validate()

    def test_rejects_unknown_direction(self):
        with pytest.raises(InvalidLeaderboardQuery):
            LeaderboardQuery(sort_order="up").validate()

    def test_rejects_bad_page_window(self):
        with pytest.raises(InvalidLeaderboardQuery):
            LeaderboardQuery(page=0).validate()
        with pytest.raises(InvalidLeaderboardQuery):
            LeaderboardQuery(page_size=1000).validate()

    def test_blank_search_is_no_filter(self):
        assert LeaderboardQuery(search="   ").validate().search is None


class TestQueryLeaderboard:

    @pytest.mark.asyncio
    async def test_default_order_is_total_score_desc_with_insertion_ties(self, db, seeded):
        page = await query_leaderboard(db, LeaderboardQuery(page_size=10))
        addresses = [e["wallet_address"] for e in page.entries]
        assert addresses == [addr(0xB2), addr(0xAB5), addr(0xA1), addr(0xA3), addr(0xC4)]
        assert [e["position_number"] for e in page.entries] == [1, 2, 3, 4, 5]
        assert page.total_users == 5
        assert page.total_pages == 1
        assert not page.has_next_page and not page.has_previous_page

    @pytest.mark.asyncio
    async def test_ascending_keeps_insertion_order_on_ties(self, db, seeded):
        page = await query_leaderboard(db, LeaderboardQuery(sort_by="txCount", sort_order="asc", page_size=10))
        assert [e["wallet_address"] for e in page.entries] == [
            addr(0xB2), addr(0xC4), addr(0xAB5), addr(0xA1), addr(0xA3),
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("sort_by", list(SORT_FIELDS))
    @pytest.mark.parametrize("sort_order", ["asc", "desc"])
    async def test_order_holds_across_page_boundaries(self, db, seeded, sort_by, sort_order):
        attr = SORT_FIELDS[sort_by]
        values = []
        positions = []
        for page_num in (1, 2, 3):
            page = await query_leaderboard(
                db, LeaderboardQuery(page=page_num, page_size=2, sort_by=sort_by, sort_order=sort_order)
            )
            values.extend(e["metrics"].get(attr, e["scores"].get(attr)) for e in page.entries)
            positions.extend(e["position_number"] for e in page.entries)
        assert len(values) == 5
        assert _ordered_correctly(values, sort_order)
        assert positions == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_pagination_metadata(self, db, seeded):
        page = await query_leaderboard(db, LeaderboardQuery(page=2, page_size=2))
        assert page.current_page == 2
        assert page.total_pages == 3
        assert page.has_next_page and page.has_previous_page
        assert [e["position_number"] for e in page.entries] == [3, 4]

        last = await query_leaderboard(db, LeaderboardQuery(page=3, page_size=2))
        assert len(last.entries) == 1
        assert not last.has_next_page

    @pytest.mark.asyncio
    async def test_page_past_the_end_is_empty(self, db, seeded):
        page = await query_leaderboard(db, LeaderboardQuery(page=9, page_size=2))
        assert page.entries == []
        assert page.total_users == 5

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_substring(self, db, seeded):
        page = await query_leaderboard(db, LeaderboardQuery(search="AB5", page_size=10))
        assert [e["wallet_address"] for e in page.entries] == [addr(0xAB5)]
        assert page.total_users == 1

        page = await query_leaderboard(db, LeaderboardQuery(search="A", page_size=10))
        assert page.total_users == 3
        assert all("a" in e["wallet_address"] for e in page.entries)
        # Positions are relative to the filtered result
        assert [e["position_number"] for e in page.entries] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_search_treats_like_wildcards_literally(self, db, seeded):
        page = await query_leaderboard(db, LeaderboardQuery(search="%"))
        assert page.total_users == 0
        assert page.total_pages == 0

    @pytest.mark.asyncio
    async def test_empty_table(self, db):
        page = await query_leaderboard(db, LeaderboardQuery())
        assert page.entries == []
        assert page.total_pages == 0
        assert page.last_updated is None


class TestSqlMatchesInMemoryOrdering:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("sort_by", ["totalScore", "txCount", "totalVolume", "isDay1User"])
    @pytest.mark.parametrize("sort_order", ["asc", "desc"])
    async def test_matches_sql_ranking(self, db, seeded, sort_by, sort_order):
        for search in (None, "a"):
            query = dict(page=1, page_size=3, sort_by=sort_by, sort_order=sort_order, search=search)
            sql_page = await query_leaderboard(db, LeaderboardQuery(**query))
            expected, total = rank_in_memory(seeded, LeaderboardQuery(**query))
            assert [e["wallet_address"] for e in sql_page.entries] == expected
            assert sql_page.total_users == total
