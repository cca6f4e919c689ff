import base64

import pytest
from fastapi.testclient import TestClient

from kerigma_import.config import ImportSettings
from kerigma_import.main import app, get_import_settings, get_store_factory
from kerigma_import.store import InMemoryStore


def _data_url(text: str, mimetype: str = "text/csv", encoding: str = "utf-8") -> str:
    b64 = base64.b64encode(text.encode(encoding)).decode("ascii")
    return f"data:{mimetype};base64,{b64}"


@pytest.fixture()
def store():
    memory = InMemoryStore()
    app.dependency_overrides[get_store_factory] = lambda: (lambda: memory)
    app.dependency_overrides[get_import_settings] = lambda: ImportSettings()
    yield memory
    app.dependency_overrides.clear()


@pytest.fixture()
def client(store):
    return TestClient(app)


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_import_semicolon_file(client, store):
    csv_text = (
        "Nome;E-mail;Tipo\n"
        "Maria Souza;maria@example.com;Membro\n"
        "João Lima;;Visita\n"
        "X;x@example.com;Pastor\n"
    )
    body = {"file": _data_url(csv_text), "filename": "pessoas.csv", "mimetype": "text/csv"}

    r = client.post("/import-pessoas", json=body)
    assert r.status_code == 200

    data = r.json()
    assert data["success"] == 2
    assert data["errors"] == 1
    assert data["details"] == [
        {
            "row": 4,
            "error": "Nome completo é obrigatório e deve ter pelo menos 2 caracteres",
            "data": "X;x@example.com;Pastor",
        }
    ]
    assert [row["nome_completo"] for row in store.rows] == ["Maria Souza", "João Lima"]
    assert store.rows[1]["email"].endswith("@noemail.cbnkerigma.local")
    assert store.rows[1]["tipo_pessoa"] == "visitante"


def test_latin1_upload_is_decoded(client, store):
    csv_text = (
        "nome,endereço,observações\n"
        "José Conceição,Rua São João,Irmão da congregação\n"
        "Antônio Araújo,Avenida Paraná,Família missionária\n"
        "Inês Gonçalves,Praça da Sé,Ministério de louvor\n"
    )
    body = {"file": _data_url(csv_text, encoding="latin-1"), "filename": "pessoas.csv", "mimetype": "text/csv"}

    r = client.post("/import-pessoas", json=body)
    assert r.status_code == 200
    assert r.json()["success"] == 3
    assert store.rows[0]["nome_completo"].startswith("Jos")


def test_spreadsheet_is_rejected_with_envelope(client, store):
    body = {
        "file": _data_url("irrelevant"),
        "filename": "pessoas.xlsx",
        "mimetype": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    }

    r = client.post("/import-pessoas", json=body)
    assert r.status_code == 400
    message = "Para importação Excel, por favor converta para CSV primeiro"
    assert r.json() == {
        "error": message,
        "success": 0,
        "errors": 1,
        "details": [{"row": 0, "error": message}],
    }
    assert store.rows == []


def test_missing_file_is_rejected(client):
    r = client.post("/import-pessoas", json={"filename": "pessoas.csv", "mimetype": "text/csv"})
    assert r.status_code == 400
    assert r.json()["error"] == "Nenhum arquivo fornecido"


def test_missing_name_column_is_rejected(client, store):
    body = {"file": _data_url("email,telefone\na@b.com,123\n"), "filename": "p.csv", "mimetype": "text/csv"}

    r = client.post("/import-pessoas", json=body)
    assert r.status_code == 400
    assert "nome_completo" in r.json()["error"]
    assert store.rows == []


def test_missing_store_settings_returns_500():
    app.dependency_overrides[get_import_settings] = lambda: ImportSettings()
    try:
        client = TestClient(app)
        body = {"file": _data_url("nome\nAna Paula\n"), "filename": "p.csv", "mimetype": "text/csv"}
        r = client.post("/import-pessoas", json=body)
    finally:
        app.dependency_overrides.clear()

    assert r.status_code == 500
    assert "SUPABASE_URL" in r.json()["error"]


def test_missing_file_is_reported_before_store_settings():
    app.dependency_overrides[get_import_settings] = lambda: ImportSettings()
    try:
        client = TestClient(app)
        r = client.post("/import-pessoas", json={"filename": "p.csv", "mimetype": "text/csv"})
    finally:
        app.dependency_overrides.clear()

    assert r.status_code == 400
    assert r.json()["error"] == "Nenhum arquivo fornecido"


def test_template_download(client):
    r = client.get("/import-pessoas/template")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert 'filename="template_pessoas.csv"' in r.headers["content-disposition"]
    assert r.text.startswith("nome_completo,email,telefone,")
    assert "João Silva" in r.text


def test_cors_preflight(client):
    r = client.options(
        "/import-pessoas",
        headers={
            "Origin": "https://app.example.org",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "authorization,content-type",
        },
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "*"
