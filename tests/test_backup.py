from __future__ import annotations

from datetime import date

import pytest

from trucktrack.models.entities import Driver, Expense, Invoice, Trip, Truck
from trucktrack.services import backup, invoicing


class TestBackupRestore:
    def test_backup_contains_every_table(self, db, expense):
        payload = backup.backup(db)
        assert payload["version"] == "1.0"
        assert set(payload["data"]) == {key for key, _ in backup.TABLE_ORDER}
        assert payload["data"]["expenses"][0]["montant"] == 25000.0
        assert payload["data"]["trips"][0]["date_depart"] == "2024-05-02"

    def test_restore_replaces_content(self, db, trip, expense):
        invoicing.create_trip_invoice(db, trip.id, today=date(2024, 6, 1))
        payload = backup.backup(db)

        backup.purge(db)
        assert db.query(Trip).count() == 0

        counts = backup.restore(db, payload["data"])
        assert counts["trips"] == 1
        assert counts["invoices"] == 1
        assert db.query(Driver).count() == 1
        assert db.query(Truck).count() == 1
        assert db.query(Expense).one().date == date(2024, 5, 3)
        assert db.query(Invoice).one().numero == "FAC-2024-001"

    def test_duplicate_ids_ignored(self, db, driver):
        row = backup.backup(db)["data"]["drivers"][0]
        backup.restore(db, {"drivers": [row, dict(row, nom="Doublon")]})
        assert db.query(Driver).one().nom == "Mbarga"

    def test_unknown_columns_ignored(self, db):
        backup.restore(db, {"thirdParties": [{"id": "tp1", "nom": "Sabc", "type": "client", "legacy": 1}]})
        assert db.execute(backup._table("third_parties").select()).one().nom == "Sabc"

    def test_invalid_payload(self, db):
        with pytest.raises(ValueError, match="data"):
            backup.restore(db, None)

    @pytest.mark.parametrize("rows", [["oops"], {"id": "d1"}])
    def test_rows_must_be_objects(self, db, driver, rows):
        with pytest.raises(ValueError, match="drivers"):
            backup.restore(db, {"drivers": rows})
        assert db.query(Driver).count() == 1

    def test_missing_required_column(self, db, driver):
        with pytest.raises(ValueError, match="invalide"):
            backup.restore(db, {"drivers": [{"id": "d1", "prenom": "Paul"}]})
        db.expire_all()
        assert db.query(Driver).one().nom == "Mbarga"
