"""Tests for donor history export."""

import pandas as pd

from foodshare_bot.services.reports import COLUMNS, donor_summary, export_donor_history

from .factories import DONOR_HOME, NGO_HQ


class TestDonorHistory:
    async def test_export_writes_all_donations(self, service, tmp_path):
        first = await service.create_donation(100, "Rice", 15, 3, "CP", DONOR_HOME, unit="kg")
        second = await service.create_donation(100, "Chapati", 100, 1, "CP", DONOR_HOME)
        await service.create_donation(555, "Soup", 5, 2, "Elsewhere", DONOR_HOME)
        await service.accept_donation(first.id, 200, "Food Bank", NGO_HQ)

        path = await export_donor_history(service, 100, str(tmp_path / "history.xlsx"))
        df = pd.read_excel(path)

        assert list(df.columns) == COLUMNS
        assert sorted(df["ID"].tolist()) == sorted([first.id, second.id])
        row = df[df["ID"] == first.id].iloc[0]
        assert row["Status"] == "accepted"
        assert row["Accepted by"] == "Food Bank"
        assert row["Unit"] == "kg"

    async def test_export_with_no_donations(self, service, tmp_path):
        path = await export_donor_history(service, 100, str(tmp_path / "empty.xlsx"))
        df = pd.read_excel(path)
        assert list(df.columns) == COLUMNS
        assert df.empty

    async def test_summary(self, service):
        assert await donor_summary(service, 100) == "No donations yet."

        first = await service.create_donation(100, "Rice", 15, 3, "CP", DONOR_HOME)
        await service.create_donation(100, "Bread", 5, 3, "CP", DONOR_HOME)
        await service.cancel_donation(first.id)

        text = await donor_summary(service, 100)
        assert "cancelled: 1 (15 total)" in text
        assert "pending: 1 (5 total)" in text
