import json
import logging
import shutil
from collections.abc import Callable
from pathlib import Path

import pytest
from conftest import BOLT_LEA, FOREST_LEA, FOW_ALL, SPECTER_LEA

from carddex.jobs import convert_collection as convert_job
from carddex.jobs import filter_collection as filter_job
from carddex.jobs import find_cards as find_job
from carddex.jobs import sort_formats as sort_job
from carddex.models.failure import InvalidPathError
from carddex.models.metadata import DBKind
from carddex.services.card_filter import CardFilterConfig, build_filter_config
from carddex.services.card_store import CardStore


@pytest.fixture
def collection_dir(tmp_path: Path, write_csv: Callable[..., Path]) -> Path:
    directory = tmp_path / "collection"
    write_csv(
        "binder.csv",
        [
            {"Scryfall ID": BOLT_LEA, "Quantity": "2"},
            {"Scryfall ID": FOW_ALL, "Quantity": "1"},
            {"Scryfall ID": FOREST_LEA, "Quantity": "10"},
            {"Scryfall ID": SPECTER_LEA, "Quantity": "1"},
        ],
        directory=directory,
    )
    return directory


@pytest.fixture
def proxies(write_csv: Callable[..., Path]) -> Path:
    return write_csv("proxies.csv", [{"Scryfall ID": FOW_ALL, "Quantity": "3"}])


@pytest.fixture
def inventory(tmp_path: Path, collection_dir: Path, proxies: Path, bulk_path: Path) -> Path:
    output = tmp_path / "inventory.json"
    convert_job.run_convert(collection_dir, bulk_path, output, groups={"proxy": proxies})
    return output


class TestRunConvert:
    def test_writes_inventory(self, inventory: Path) -> None:
        db = CardStore.load(inventory)
        cards = db.get_all()

        assert db.meta.type is DBKind.INVENTORY
        assert db.meta.groups == {"proxy": ["proxies"]}
        assert sum(card.quantity for card in cards) == 17
        proxy = next(card for card in cards if card.filename == "proxies")
        assert proxy.price == "0.00"

    def test_missing_input(
        self, tmp_path: Path, bulk_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.ERROR, logger="carddex.jobs.convert_collection"):
            with pytest.raises(InvalidPathError):
                convert_job.run_convert(tmp_path / "missing", bulk_path, tmp_path / "out.json")

        assert "Failed to convert collection" in caplog.text


class TestRunSort:
    def test_sorts_into_format_files(self, tmp_path: Path, inventory: Path) -> None:
        output = tmp_path / "sorted"

        results = sort_job.run_sort(inventory, output, ["oldschool", "premodern"])

        assert [result.name for result in results] == [
            "oldschool",
            "premodern",
            "basic-land",
            "unsorted",
        ]
        premodern = CardStore.load(output / "premodern" / "premodern.json")
        assert premodern.meta.type is DBKind.SORTED_FORMAT
        assert premodern.meta.groups == {"proxy": ["proxies"]}
        assert {card.filename for card in premodern.get_all()} == {"binder", "proxies"}

        unsorted = CardStore.load(output / "unsorted" / "unsorted.json")
        assert unsorted.meta.type is DBKind.SORTED
        assert [card.name for card in unsorted.get_all()] == ["Hypnotic Specter"]

    def test_main(
        self, tmp_path: Path, inventory: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        output = tmp_path / "sorted"
        monkeypatch.setattr(
            "sys.argv",
            ["carddex-sort", str(inventory), str(output), "oldschool", "--high-value", ">=100"],
        )

        sort_job.main()

        high_value = output / "oldschool" / "high-value" / "oldschool-high-value.json"
        data = json.loads(high_value.read_text(encoding="utf-8"))
        assert data["meta"]["format"] == "oldschool"
        assert [card["name"] for card in data["cards"]] == ["Lightning Bolt"]
        assert not (output / "oldschool" / "oldschool.json").exists()


class TestRunFilter:
    def test_extracts_matching_cards(self, tmp_path: Path, inventory: Path) -> None:
        output = tmp_path / "blue.json"

        cards = filter_job.run_filter(
            inventory, output, build_filter_config(color_identity=["u"])
        )

        db = CardStore.load(output)
        assert [card.name for card in cards] == ["Force of Will", "Force of Will"]
        assert db.get_all() == cards
        assert db.meta.type is DBKind.INVENTORY
        assert db.meta.name == "blue"
        assert db.meta.groups == {"proxy": ["proxies"]}

    def test_logs_filter_description(
        self, tmp_path: Path, inventory: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        config = build_filter_config(formats=["oldschool"], price=">=100")

        with caplog.at_level(logging.INFO, logger="carddex.jobs.filter_collection"):
            cards = filter_job.run_filter(inventory, tmp_path / "old.json", config)

        assert [card.name for card in cards] == ["Lightning Bolt"]
        assert "Formats: oldschool" in caplog.text
        assert "Price: >=100" in caplog.text

    def test_requires_filter_checks(self, tmp_path: Path, inventory: Path) -> None:
        output = tmp_path / "all.json"

        with pytest.raises(ValueError, match="no filtering options"):
            filter_job.run_filter(inventory, output, CardFilterConfig())

        assert not output.exists()

    def test_nothing_written_without_matches(
        self, tmp_path: Path, inventory: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        output = tmp_path / "none.json"

        with caplog.at_level(logging.WARNING, logger="carddex.jobs.filter_collection"):
            cards = filter_job.run_filter(inventory, output, build_filter_config(text="lotus"))

        assert cards == []
        assert not output.exists()
        assert "CardDB not written" in caplog.text

    def test_main(self, tmp_path: Path, inventory: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        output = tmp_path / "bolts.json"
        monkeypatch.setattr(
            "sys.argv", ["carddex-filter", str(inventory), str(output), "--search", "BOLT"]
        )

        filter_job.main()

        data = json.loads(output.read_text(encoding="utf-8"))
        assert [(card["name"], card["quantity"]) for card in data["cards"]] == [
            ("Lightning Bolt", 2)
        ]

    def test_main_without_options(
        self, tmp_path: Path, inventory: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(
            "sys.argv", ["carddex-filter", str(inventory), str(tmp_path / "all.json")]
        )

        with pytest.raises(SystemExit):
            filter_job.main()

    def test_main_rejects_unsupported_format(
        self, tmp_path: Path, inventory: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(
            "sys.argv",
            ["carddex-filter", str(inventory), str(tmp_path / "out.json"), "--formats", "cube"],
        )

        with pytest.raises(SystemExit):
            filter_job.main()


class TestRunFind:
    @pytest.fixture
    def sorted_dir(self, tmp_path: Path, inventory: Path) -> Path:
        output = tmp_path / "sorted"
        sort_job.run_sort(inventory, output, ["oldschool", "premodern"])
        # Inventory CardDBs in the tree are not searched
        shutil.copy(inventory, output / "inventory.json")
        return output

    def test_finds_cards_in_sorted_collections(
        self, sorted_dir: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO, logger="carddex.jobs.find_cards"):
            matches = find_job.run_find(sorted_dir, build_filter_config(text="force"))

        assert sorted((m.collection, m.card.filename, m.card.quantity) for m in matches) == [
            ("premodern", "binder", 1),
            ("premodern", "proxies", 3),
        ]
        assert all(m.filepath.parent.name == "premodern" for m in matches)
        assert "name: Force of Will; quantity: 3; filename: proxies" in caplog.text

    def test_no_matches(self, sorted_dir: Path) -> None:
        assert find_job.run_find(sorted_dir, build_filter_config(text="lotus")) == []

    def test_requires_filter_checks(self, sorted_dir: Path) -> None:
        with pytest.raises(ValueError):
            find_job.run_find(sorted_dir, CardFilterConfig())

    def test_main(
        self,
        sorted_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        monkeypatch.setattr(
            "sys.argv",
            ["carddex-find", "Lightning", str(sorted_dir), "--formats", "oldschool"],
        )

        with caplog.at_level(logging.INFO, logger="carddex.jobs.find_cards"):
            find_job.main()

        assert "[oldschool] name: Lightning Bolt; quantity: 2; filename: binder" in caplog.text
        assert "Found 1 matching card entries" in caplog.text
