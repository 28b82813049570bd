"""Tests for chain file loading and the JSON adapter."""

import json

import pytest

from tokenkit import ChainFileParser, TokenFileError
from tokenkit.adapters.json_adapter import JsonAdapter


USDC = {
    "address": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
    "name": "USD Coin",
    "symbol": "USDC",
    "decimals": 6,
    "logoURI": "../images/usdc.png",
}


@pytest.fixture
def chains_dir(tmp_path):
    directory = tmp_path / "chains"
    directory.mkdir()
    return directory


@pytest.fixture
def parser():
    return ChainFileParser()


def write_chain(chains_dir, name, tokens):
    path = chains_dir / name
    path.write_text(json.dumps(tokens))
    return path


class TestJsonAdapter:

    def test_can_handle(self):
        adapter = JsonAdapter()
        assert adapter.can_handle("chains/1.json")
        assert adapter.can_handle("chains/1.JSON")
        assert not adapter.can_handle("chains/1.csv")

    def test_reads_utf8_bom(self, tmp_path):
        path = tmp_path / "1.json"
        path.write_bytes(b"\xef\xbb\xbf" + json.dumps([{"address": "0x1", "name": "Café"}]).encode("utf-8"))

        assert JsonAdapter().read(str(path)) == [{"address": "0x1", "name": "Café"}]

    def test_reads_utf16(self, tmp_path):
        path = tmp_path / "1.json"
        path.write_bytes(json.dumps([{"address": "0x1"}]).encode("utf-16"))

        assert JsonAdapter().read(str(path)) == [{"address": "0x1"}]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            JsonAdapter().read(str(tmp_path / "nope.json"))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "1.json"
        path.write_text("  \n")

        with pytest.raises(ValueError, match="empty"):
            JsonAdapter().read(str(path))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "1.json"
        path.write_text('[{"address": ')

        with pytest.raises(ValueError, match="Error parsing JSON"):
            JsonAdapter().read(str(path))


class TestChainFiles:

    def test_chain_id_from_name(self, parser):
        assert parser.chain_id_for("chains/137.json") == 137

    @pytest.mark.parametrize("name", ["mainnet.json", "1.json.bak.json", "chain1.json", "-1.json"])
    def test_invalid_names(self, parser, name):
        with pytest.raises(TokenFileError, match="Invalid token filename"):
            parser.chain_id_for(name)

    def test_numeric_sort(self, parser, chains_dir):
        for name in ["137.json", "2.json", "10.json", "1.json"]:
            write_chain(chains_dir, name, [])

        assert [p.name for p in parser.list_chain_files(chains_dir)] == ["1.json", "2.json", "10.json", "137.json"]

    def test_invalid_name_in_directory(self, parser, chains_dir):
        write_chain(chains_dir, "1.json", [])
        write_chain(chains_dir, "optimism.json", [])

        with pytest.raises(TokenFileError):
            parser.list_chain_files(chains_dir)

    def test_non_json_files_are_ignored(self, parser, chains_dir):
        write_chain(chains_dir, "1.json", [])
        (chains_dir / "README.md").write_text("notes")

        assert [p.name for p in parser.list_chain_files(chains_dir)] == ["1.json"]


class TestParseChainFile:

    def test_sets_chain_id_from_file_name(self, parser, chains_dir):
        path = write_chain(chains_dir, "10.json", [{**USDC, "chainId": 1}])

        [token] = parser.parse_chain_file(path)

        assert token["chainId"] == 10
        assert token["symbol"] == "USDC"

    def test_token_without_address(self, parser, chains_dir):
        path = write_chain(chains_dir, "1.json", [{"name": "No Address"}])

        with pytest.raises(TokenFileError, match="no address"):
            parser.parse_chain_file(path)

    def test_not_an_array(self, parser, chains_dir):
        path = write_chain(chains_dir, "1.json", {"tokens": []})

        with pytest.raises(TokenFileError, match="expected a JSON array"):
            parser.parse_chain_file(path)

    def test_invalid_json_is_token_file_error(self, parser, chains_dir):
        path = chains_dir / "1.json"
        path.write_text("{oops")

        with pytest.raises(TokenFileError, match="Invalid token file"):
            parser.parse_chain_file(path)

    def test_load_tokens_in_chain_order(self, parser, chains_dir):
        dai = {**USDC, "symbol": "DAI", "name": "Dai"}
        write_chain(chains_dir, "137.json", [dai])
        write_chain(chains_dir, "1.json", [USDC, dai])

        tokens = parser.load_tokens(chains_dir)

        assert [(t["chainId"], t["symbol"]) for t in tokens] == [(1, "USDC"), (1, "DAI"), (137, "DAI")]

    def test_registered_adapter_takes_precedence(self, parser, chains_dir):
        class StaticAdapter:
            def can_handle(self, file_path):
                return True

            def read(self, file_path):
                return [{"address": "0xstatic"}]

        parser.register_adapter(StaticAdapter())
        path = write_chain(chains_dir, "1.json", [USDC])

        assert parser.parse_chain_file(path) == [{"address": "0xstatic", "chainId": 1}]
