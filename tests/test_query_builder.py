"""Wire query construction and cache key derivation."""

from catalog_search.cache import cache_key
from catalog_search.config import SessionContext, Settings, StoreView
from catalog_search.models import SearchRequest
from catalog_search.query_builder import QueryBuilder, normalize_paging

VIEW = StoreView(code="default", es_host="localhost:9200", es_index="catalog")
QUERY = {"query": {"match": {"name": "shoes"}}}


def test_paging_defaults_for_out_of_range_values():
    """Non-positive sizes fall back to 50 and negative starts to 0."""

    assert normalize_paging(-5, 0) == (0, 50)
    assert normalize_paging(10, -1) == (10, 50)
    assert normalize_paging(20, 10) == (20, 10)


def test_build_uses_store_view_index_unless_overridden(config):
    """The store view index applies unless the request overrides it."""

    builder = QueryBuilder(config)

    default = builder.build(SearchRequest(query=QUERY), VIEW).cacheable
    override = builder.build(SearchRequest(query=QUERY, index="catalog_de"), VIEW).cacheable

    assert default.index == "catalog"
    assert override.index == "catalog_de"
    assert default.type == "product"


def test_projections_only_when_requested(config):
    """Source include and exclude params appear only when asked for."""

    builder = QueryBuilder(config)

    plain = builder.build(SearchRequest(query=QUERY), VIEW).on_wire
    projected = builder.build(
        SearchRequest(query=QUERY, include_fields=["name", "sku"], exclude_fields=["description"]),
        VIEW,
    ).on_wire

    assert "_source_include" not in plain.query_params()
    assert "_source_exclude" not in plain.query_params()
    assert projected.query_params()["_source_include"] == "name,sku"
    assert projected.query_params()["_source_exclude"] == "description"


def test_group_id_is_cacheable_and_token_only_on_wire(config):
    """Group id stays in the cacheable view, the token only goes on the wire."""

    builder = QueryBuilder(config)
    session = SessionContext(group_id="wholesale", group_token="tok-123")

    prepared = builder.build(SearchRequest(query=QUERY), VIEW, session)

    assert prepared.cacheable.body["groupId"] == "wholesale"
    assert "groupToken" not in prepared.cacheable.body
    assert "groupId" not in prepared.on_wire.body
    assert prepared.on_wire.body["groupToken"] == "tok-123"


def test_group_id_skipped_for_non_product_entities(config):
    """Only product queries carry the pricing group id."""

    prepared = QueryBuilder(config).build(
        SearchRequest(query=QUERY, entity_type="category"),
        VIEW,
        SessionContext(group_id="wholesale", group_token="tok-123"),
    )

    assert "groupId" not in prepared.cacheable.body
    assert prepared.on_wire.body["groupToken"] == "tok-123"


def test_price_tiers_disabled_leaves_body_untouched():
    """Without price tiers neither group field is added."""

    prepared = QueryBuilder(Settings(use_price_tiers=False, store_views={})).build(
        SearchRequest(query=QUERY), VIEW, SessionContext(group_id="wholesale", group_token="tok")
    )

    assert prepared.cacheable.body == QUERY
    assert prepared.on_wire.body == QUERY


def test_caller_query_is_not_mutated(config):
    """Building never mutates the caller's query mapping."""

    query = {"query": {"match_all": {}}}

    QueryBuilder(config).build(SearchRequest(query=query), VIEW, SessionContext("g1", "t1"))

    assert query == {"query": {"match_all": {}}}


def test_cache_key_ignores_group_token(config):
    """Requests differing only in group token share a key."""

    builder = QueryBuilder(config)
    request = SearchRequest(query=QUERY, start=0, size=10)

    first = builder.build(request, VIEW, SessionContext(group_id="g1", group_token="token-a"))
    second = builder.build(request, VIEW, SessionContext(group_id="g1", group_token="token-b"))

    assert cache_key(first.cacheable) == cache_key(second.cacheable)


def test_cache_key_separates_pricing_groups_and_pages(config):
    """Group id and paging take part in the key."""

    builder = QueryBuilder(config)
    request = SearchRequest(query=QUERY, size=10)

    retail = cache_key(builder.build(request, VIEW, SessionContext(group_id="retail")).cacheable)
    wholesale = cache_key(builder.build(request, VIEW, SessionContext(group_id="wholesale")).cacheable)
    page_two = cache_key(
        builder.build(SearchRequest(query=QUERY, start=10, size=10), VIEW, SessionContext(group_id="retail")).cacheable
    )

    assert len({retail, wholesale, page_two}) == 3


def test_cache_key_is_independent_of_body_key_order(config):
    """Key hashing is insensitive to mapping order."""

    builder = QueryBuilder(config)
    a = builder.build(SearchRequest(query={"a": 1, "b": {"c": 2, "d": 3}}), VIEW).cacheable
    b = builder.build(SearchRequest(query={"b": {"d": 3, "c": 2}, "a": 1}), VIEW).cacheable

    assert cache_key(a) == cache_key(b)


def test_build_text_sets_full_text_param(config):
    """Text search sends q with normalized paging and no body."""

    wire = QueryBuilder(config).build_text("red shoes", -1, 0, VIEW)

    assert wire.body is None
    assert wire.query_params() == {"size": "50", "from": "0", "sort": "", "q": "red shoes"}
