from __future__ import annotations

import runpy
from pathlib import Path

import pytest
import uvicorn

import run_server
from trucktrack.config import settings as app_settings


def _post(client, url, payload, status=201):
    r = client.post(url, json=payload)
    assert r.status_code == status, r.text
    return r.json()


@pytest.fixture
def fleet(client):
    """Un chauffeur, un tracteur et un trajet planifié créés via l'API."""
    driver = _post(client, "/api/drivers", {"nom": "Ngono", "prenom": "Alain", "telephone": "699000000"})
    truck = _post(client, "/api/trucks", {
        "immatriculation": "CE-456-XY", "modele": "Renault T", "type": "tracteur",
        "date_mise_en_circulation": "2020-01-15",
    })
    trip = _post(client, "/api/trips", {
        "tracteur_id": truck["id"], "chauffeur_id": driver["id"],
        "origine": "Douala", "destination": "Garoua", "date_depart": "2024-05-02",
        "recette": 100000, "client": "Sabc",
    })
    return {"driver": driver, "truck": truck, "trip": trip}


class TestBasics:
    def test_root_and_health(self, client):
        assert client.get("/").json()["api"] == "/api"
        assert client.get("/api/health").json() == {"status": "ok"}

    def test_unknown_id_is_404(self, client):
        r = client.get("/api/trucks/nope")
        assert r.status_code == 404
        assert r.json() == {"ok": False, "error": "Camion nope introuvable"}

    def test_validation_error_is_422(self, client):
        assert client.post("/api/third-parties", json={"type": "client"}).status_code == 422

    def test_third_party_crud(self, client):
        tp = _post(client, "/api/third-parties", {"nom": "  Total Energies ", "type": "fournisseur"})
        assert tp["nom"] == "Total Energies"
        r = client.patch(f"/api/third-parties/{tp['id']}", json={"telephone": "233000000"})
        assert r.json()["telephone"] == "233000000"
        assert client.delete(f"/api/third-parties/{tp['id']}").json() == {"ok": True}
        assert client.get("/api/third-parties").json() == []


class TestTrips:
    def test_needs_a_truck(self, client, fleet):
        r = client.post("/api/trips", json={
            "chauffeur_id": fleet["driver"]["id"], "origine": "A", "destination": "B",
            "date_depart": "2024-05-02",
        })
        assert r.status_code == 400
        assert "tracteur" in r.json()["error"]

    def test_status_must_go_through_en_cours(self, client, fleet):
        url = f"/api/trips/{fleet['trip']['id']}"
        r = client.patch(url, json={"statut": "termine"})
        assert r.status_code == 400
        assert "En cours" in r.json()["error"]

        assert client.patch(url, json={"statut": "en_cours"}).status_code == 200
        done = client.patch(url, json={"statut": "termine"}).json()
        assert done["statut"] == "termine"
        assert done["date_arrivee"] is not None

        r = client.patch(url, json={"statut": "en_cours"})
        assert r.status_code == 400

    def test_inactive_truck_reactivated(self, client, fleet):
        truck_url = f"/api/trucks/{fleet['truck']['id']}"
        client.patch(truck_url, json={"statut": "inactif"})
        client.patch(f"/api/trips/{fleet['trip']['id']}", json={"description": "Ciment"})
        assert client.get(truck_url).json()["statut"] == "actif"

    def test_filters(self, client, fleet):
        assert len(client.get("/api/trips", params={"statut": "planifie"}).json()) == 1
        assert client.get("/api/trips", params={"statut": "termine"}).json() == []


class TestDeletionRules:
    def test_truck_in_use(self, client, fleet):
        r = client.delete(f"/api/trucks/{fleet['truck']['id']}")
        assert r.status_code == 409
        assert r.json()["ok"] is False

    def test_driver_on_mission(self, client, fleet):
        assert client.delete(f"/api/drivers/{fleet['driver']['id']}").status_code == 409

    def test_truck_delete_removes_expenses(self, client, fleet):
        client.patch(f"/api/trips/{fleet['trip']['id']}", json={"statut": "annule"})
        _post(client, "/api/expenses", {
            "camion_id": fleet["truck"]["id"], "categorie": "Péage", "montant": 5000,
            "date": "2024-05-02", "chauffeur_id": fleet["driver"]["id"],
        })
        r = client.delete(f"/api/trucks/{fleet['truck']['id']}")
        assert r.json() == {"ok": True, "expenses_deleted": 1}
        assert client.get("/api/expenses").json() == []
        assert client.get(f"/api/drivers/{fleet['driver']['id']}").json()["transactions"] == []

    def test_invoiced_trip_cannot_be_deleted(self, client, fleet):
        _post(client, "/api/invoices/trip", {"trajet_id": fleet["trip"]["id"]})
        r = client.delete(f"/api/trips/{fleet['trip']['id']}")
        assert r.status_code == 409
        assert "facture" in r.json()["error"]

    def test_truck_with_invoiced_expense(self, client, fleet):
        client.patch(f"/api/trips/{fleet['trip']['id']}", json={"statut": "annule"})
        exp = _post(client, "/api/expenses", {
            "camion_id": fleet["truck"]["id"], "categorie": "Entretien", "montant": 40000, "date": "2024-05-04",
        })
        _post(client, "/api/invoices/expense", {"expense_id": exp["id"]})

        r = client.delete(f"/api/trucks/{fleet['truck']['id']}")
        assert r.status_code == 409
        assert "facturée" in r.json()["error"]
        assert client.get(f"/api/expenses/{exp['id']}").status_code == 200
        assert client.get(f"/api/trucks/{fleet['truck']['id']}").status_code == 200


class TestExpenses:
    def test_driver_sortie_follows_expense(self, client, fleet):
        driver_id = fleet["driver"]["id"]
        exp = _post(client, "/api/expenses", {
            "camion_id": fleet["truck"]["id"], "chauffeur_id": driver_id,
            "categorie": "Carburant", "montant": 30000, "date": "2024-05-03", "description": "Gasoil",
        })
        txs = client.get(f"/api/drivers/{driver_id}").json()["transactions"]
        assert [t["id"] for t in txs] == [f"expense_{exp['id']}"]

        r = client.delete(f"/api/drivers/{driver_id}/transactions/expense_{exp['id']}")
        assert r.status_code == 409

        client.patch(f"/api/expenses/{exp['id']}", json={"chauffeur_id": None})
        assert client.get(f"/api/drivers/{driver_id}").json()["transactions"] == []

    def test_manual_driver_transaction(self, client, fleet):
        driver_id = fleet["driver"]["id"]
        body = _post(client, f"/api/drivers/{driver_id}/transactions", {
            "type": "apport", "montant": 15000, "date": "2024-05-01", "description": "Avance",
        })
        tx_id = body["transactions"][0]["id"]
        stats = client.get(f"/api/drivers/{driver_id}/stats").json()
        assert stats["apports_from_manual"] == 15000.0
        assert client.delete(f"/api/drivers/{driver_id}/transactions/{tx_id}").json()["transactions"] == []


class TestInvoices:
    def test_create_uses_default_tax_and_pays(self, client, fleet):
        inv = _post(client, "/api/invoices", {"trajet_id": fleet["trip"]["id"], "remise": 10})
        assert inv["montant_ttc"] == 107325.0
        assert inv["numero"].startswith("FAC-")

        r = client.post(f"/api/invoices/{inv['id']}/payment", json={"montant_paye": 50000})
        body = r.json()
        assert body["ok"] is True
        assert body["invoice"]["statut"] == "en_attente"
        assert body["trip"]["recette"] == 50000.0

        r = client.post(f"/api/invoices/{inv['id']}/payment", json={"montant_paye": 200000})
        assert r.status_code == 400

        body = client.post(f"/api/invoices/{inv['id']}/payment", json={"montant_paye": 107325}).json()
        assert body["message"] == "Facture marquée comme payée complètement"
        assert client.get("/api/invoices/stats").json()["payees"] == 1

    def test_double_invoicing_is_conflict(self, client, fleet):
        _post(client, "/api/invoices/trip", {"trajet_id": fleet["trip"]["id"]})
        r = client.post("/api/invoices/trip", json={"trajet_id": fleet["trip"]["id"]})
        assert r.status_code == 409
        assert client.get("/api/invoices/available-trips").json() == []

    def test_trip_or_expense_required(self, client):
        assert client.post("/api/invoices", json={}).status_code == 400

    def test_list_filters(self, client, fleet):
        _post(client, "/api/invoices/trip", {"trajet_id": fleet["trip"]["id"]})
        assert len(client.get("/api/invoices", params={"search": "sabc"}).json()) == 1
        assert client.get("/api/invoices", params={"status": "payee"}).json() == []


class TestCaisseAndSettings:
    def test_journal(self, client):
        client.put("/api/caisse/solde-initial", json={"solde_initial": 1000})
        _post(client, "/api/caisse/entries", {"date": "2024-01-02", "depense": 300, "description": "Taxi"})
        _post(client, "/api/caisse/entries", {"date": "2024-01-01", "recette": 500, "description": "Vente"})
        journal = client.get("/api/caisse/journal").json()
        assert [r["solde"] for r in journal["rows"]] == [1500.0, 1200.0]
        assert journal["summary"]["solde_actuel"] == 1200.0

        only_out = client.get("/api/caisse/journal", params={"type": "sortie"}).json()
        assert [r["solde"] for r in only_out["rows"]] == [1200.0]

    def test_entry_with_both_amounts_rejected(self, client):
        r = client.post("/api/caisse/entries", json={"date": "2024-01-01", "recette": 1, "depense": 1})
        assert r.status_code == 400

    def test_settings_update(self, client, settings_file):
        assert client.get("/api/settings").json()["taxes"]["tva"] == 19.25
        body = client.put("/api/settings", json={"company": {"name": "Trans Cam"}, "taxes": {"tps": 2}}).json()
        assert body["company"]["name"] == "Trans Cam"
        assert body["taxes"] == {"tva": 19.25, "tps": 2.0}
        assert settings_file.exists()
        assert "Diesel" in client.get("/api/settings/sub-categories", params={"categorie": "Carburant"}).json()


class TestAdminAndReports:
    def test_backup_restore_roundtrip(self, client, fleet):
        r = client.get("/api/admin/backup")
        assert "truck-track-backup-" in r.headers["content-disposition"]
        payload = r.json()

        assert client.delete("/api/admin/purge").json()["message"] == "Base de données purgée avec succès"
        assert client.get("/api/trips").json() == []

        body = client.post("/api/admin/restore", json=payload).json()
        assert body["counts"]["trips"] == 1
        assert len(client.get("/api/trips").json()) == 1

    def test_restore_without_data(self, client):
        r = client.post("/api/admin/restore", json={"version": "1.0"})
        assert r.status_code == 400

    def test_dashboard(self, client, fleet):
        stats = client.get("/api/dashboard").json()
        assert stats["total_trucks"] == 1
        assert stats["trips"]["planifie"] == 1

    def test_report_files(self, client, fleet):
        r = client.get("/api/reports/trips.xlsx")
        assert r.status_code == 200
        assert r.content[:2] == b"PK"
        r = client.get("/api/reports/caisse.pdf")
        assert r.headers["content-type"] == "application/pdf"
        assert client.get("/api/reports/unknown.pdf").status_code == 404

        inv = _post(client, "/api/invoices/trip", {"trajet_id": fleet["trip"]["id"]})
        r = client.get(f"/api/reports/invoices/{inv['id']}.pdf")
        assert r.content.startswith(b"%PDF")


class TestRequiredFieldsOnPatch:
    @pytest.mark.parametrize("entity, field", [
        ("trip", "chauffeur_id"),
        ("truck", "immatriculation"),
        ("truck", "date_mise_en_circulation"),
        ("driver", "nom"),
    ])
    def test_null_is_rejected(self, client, fleet, entity, field):
        url = f"/api/{entity}s/{fleet[entity]['id']}"
        r = client.patch(url, json={field: None})
        assert r.status_code == 400
        assert r.json() == {"ok": False, "error": f"Le champ {field} est obligatoire"}
        assert client.get(url).json()[field] == fleet[entity][field]

    def test_third_party_name(self, client):
        tp = _post(client, "/api/third-parties", {"nom": "Sabc", "type": "client"})
        r = client.patch(f"/api/third-parties/{tp['id']}", json={"nom": None})
        assert r.status_code == 400

    def test_nullable_field_can_be_cleared(self, client, fleet):
        url = f"/api/trips/{fleet['trip']['id']}"
        assert client.patch(url, json={"client": None}).json()["client"] is None

    def test_cash_entry_description(self, client):
        entry = _post(client, "/api/caisse/entries", {"date": "2024-01-01", "recette": 500, "description": "Vente"})
        r = client.patch(f"/api/caisse/entries/{entry['id']}", json={"description": None})
        assert r.status_code == 400


class TestEntryPoints:
    @pytest.fixture
    def calls(self, monkeypatch):
        seen = []
        monkeypatch.setattr(uvicorn, "run", lambda *args, **kwargs: seen.append((args, kwargs)))
        monkeypatch.setattr(app_settings, "HOST", "0.0.0.0")
        monkeypatch.setattr(app_settings, "PORT", 8123)
        return seen

    def test_main_module_uses_settings(self, calls, monkeypatch):
        monkeypatch.setattr(app_settings, "RELOAD", False)
        runpy.run_path(str(Path(__file__).resolve().parent.parent / "main.py"), run_name="__main__")
        (args, kwargs), = calls
        assert args == ("main:app",)
        assert (kwargs["host"], kwargs["port"], kwargs["reload"]) == ("0.0.0.0", 8123, False)

    def test_run_server_uses_settings(self, calls):
        run_server.main()
        (args, kwargs), = calls
        assert (kwargs["host"], kwargs["port"], kwargs["reload"]) == ("0.0.0.0", 8123, False)
