from coinwatch.data.decode import decode_cache_map, decode_entry, decode_json, decode_watchlist


def test_decode_json_failure_is_a_result():
    result = decode_json("{not json")
    assert not result.ok
    assert "invalid JSON" in result.error
    assert not decode_json(None).ok


def test_entry_requires_string_id():
    assert not decode_entry({"name": "Nameless"}).ok
    assert not decode_entry({"id": ""}).ok
    assert not decode_entry({"id": 12}).ok
    assert not decode_entry("bitcoin").ok


def test_entry_defaults_name_and_symbol_from_id():
    entry = decode_entry({"id": "Polkadot", "name": 5, "symbol": None, "image": 3}).value
    assert entry.id == "polkadot"
    assert entry.name == "POLKADOT"
    assert entry.symbol == "POLKA"
    assert entry.image is None
    assert entry.is_default is False


def test_watchlist_skips_invalid_items():
    result = decode_watchlist([{"id": "solana", "name": "Solana", "symbol": "SOL"}, {"bad": True}, None])
    assert result.ok
    assert [e.id for e in result.value] == ["solana"]


def test_watchlist_must_be_a_list():
    assert not decode_watchlist({"id": "solana"}).ok


def test_cache_map_decodes_entries():
    raw = {
        "Bitcoin": {
            "overview": {"id": "bitcoin", "name": "Bitcoin", "symbol": "BTC", "price": 100, "change24h": 2},
            "overviewUpdatedAt": 10,
            "history": [1, 2, 3],
            "historyUpdatedAt": 20,
        },
        "ethereum": {"history": [5]},
        "broken": "nope",
    }
    result = decode_cache_map(raw)
    assert result.ok
    btc = result.value["bitcoin"]
    assert btc.overview.price == 100.0
    assert btc.overview_updated_at == 10
    assert btc.history == (1.0, 2.0, 3.0)
    assert btc.history_updated_at == 20
    assert result.value["ethereum"].history == (5.0, 5.0)
    assert result.value["ethereum"].history_updated_at is None
    assert "broken" not in result.value


def test_cache_map_rejects_non_object():
    assert not decode_cache_map([1, 2]).ok
    assert not decode_cache_map("cache").ok


def test_cache_entry_drops_invalid_overview():
    result = decode_cache_map({"doge": {"overview": {"id": "doge", "price": -1}, "overviewUpdatedAt": 5}})
    entry = result.value["doge"]
    assert entry.overview is None
    assert entry.overview_updated_at is None


def test_decode_json_too_deep_is_a_failure():
    result = decode_json("[" * 200000 + "]" * 200000)
    assert not result.ok
