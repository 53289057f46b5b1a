from datetime import date

import pytest
import yaml

from expense_calculator import config as config_module
from expense_calculator.charts import CHART_COLORS, build_chart_data, color_for, format_amount
from expense_calculator.core.models import EXPENSE_CATEGORIES, Expense


def test_missing_config_returns_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("EXPENSE_CALC_BACKEND", raising=False)
    cfg = config_module.load_config(tmp_path / "missing.yaml")
    assert cfg["backend"] == "sqlite"
    assert cfg["categories"] == EXPENSE_CATEGORIES
    assert cfg["auth"]["username"] == "admin"


def test_config_file_merges_nested_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"backend": "memory", "rest": {"url": "https://db.example.co"}}))

    cfg = config_module.load_config(path)

    assert cfg["backend"] == "memory"
    assert cfg["rest"]["url"] == "https://db.example.co"
    assert cfg["rest"]["table"] == "expenses"
    assert "sqlite" in cfg["backends"]


def test_env_overrides_and_defaults_not_mutated(tmp_path, monkeypatch):
    monkeypatch.setenv("EXPENSE_CALC_REST_KEY", "from-env")
    monkeypatch.setenv("EXPENSE_CALC_CONFIG", str(tmp_path / "env-config.yaml"))
    (tmp_path / "env-config.yaml").write_text("currency_symbol: '€'\n")

    cfg = config_module.load_config()

    assert cfg["rest"]["api_key"] == "from-env"
    assert cfg["currency_symbol"] == "€"
    assert config_module.DEFAULT_CONFIG["rest"]["api_key"] == ""


def test_config_must_be_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        config_module.load_config(path)


def test_save_config_roundtrip(tmp_path):
    path = tmp_path / "out" / "config.yaml"
    config_module.save_config({"backend": "memory"}, path)
    assert config_module.load_config(path)["backend"] == "memory"


def test_chart_data_empty_and_palette():
    assert build_chart_data([]) == {}
    assert color_for(0) == CHART_COLORS[0]
    assert color_for(len(CHART_COLORS) + 2) == CHART_COLORS[2]
    assert format_amount(1234.5) == "$1,234.50"
    assert format_amount(3, "₹") == "₹3.00"


def test_chart_data_series():
    expenses = [
        Expense(id="1", amount=100.0, category="Food", description="a", date=date(2024, 1, 5)),
        Expense(id="2", amount=50.0, category="Food", description="b", date=date(2024, 2, 10)),
        Expense(id="3", amount=30.0, category="Transport", description="c", date=date(2024, 1, 20)),
    ]
    data = build_chart_data(expenses, today=date(2024, 2, 15))

    assert data["category"]["labels"] == ["Food", "Transport"]
    assert data["category"]["values"] == [150.0, 30.0]
    assert data["category"]["percentages"] == [83.3, 16.7]
    assert data["category"]["colors"] == CHART_COLORS[:2]
    assert data["monthly"]["labels"] == ["Jan 2024", "Feb 2024"]
    assert data["monthly"]["values"] == [130.0, 50.0]
    assert data["daily"]["labels"] == ["Jan 20", "Feb 10"]
    assert [row["category"] for row in data["top_categories"]] == ["Food", "Transport"]
    assert data["top_categories"][1]["color"] == CHART_COLORS[1]
