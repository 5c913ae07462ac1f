import os

from fastapi.testclient import TestClient

from inventory_api.database import settings


def _import(client, text, filename="products.csv"):
    return client.post(
        "/api/products/import",
        files={"file": (filename, text.encode("utf-8"), "text/csv")},
    )


def _seed(client):
    response = _import(
        client,
        "name,unit,category,brand,stock,status,image\n"
        "Widget,pcs,Parts,Acme,10,,\n"
        "Blue Paint,can,Paint,Dulux,0,,/static/paint.png\n"
        "Red Paint,can,Paint,Dulux,3,,\n"
        "100% Cotton Rag,pack,Cleaning,,8,,\n",
    )
    assert response.status_code == 200
    return {product["name"]: product for product in client.get("/api/products").json()}


def _put_body(product, **overrides):
    body = {key: product[key] for key in ("name", "unit", "category", "brand", "stock", "image")}
    body.update(overrides)
    return body


def test_root(client):
    assert client.get("/").json() == {"message": "Inventory API"}


def test_import_example_response(client):
    response = _import(client, "name,stock\nWidget,10\nWidget,5")

    assert response.status_code == 200
    widget = client.get("/api/products/search", params={"name": "widget"}).json()[0]
    assert response.json() == {
        "added": 1,
        "skipped": 1,
        "duplicates": [{"name": "Widget", "existingId": widget["id"]}],
    }


def test_import_without_file_is_rejected(client):
    response = client.post("/api/products/import")

    assert response.status_code == 400
    assert response.json() == {"detail": "No file uploaded"}


def test_import_removes_uploaded_temp_file(client):
    _import(client, "name,stock\nWidget,10")

    assert os.listdir(settings.upload_dir) == []


def test_import_removes_temp_file_when_import_fails(client, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("database locked")

    monkeypatch.setattr("inventory_api.main.import_csv", explode)
    with TestClient(client.app, raise_server_exceptions=False) as failing_client:
        response = _import(failing_client, "name,stock\nWidget,10")

    assert response.status_code == 500
    assert os.listdir(settings.upload_dir) == []


def test_list_products_filters_by_exact_category(client):
    _seed(client)

    names = [p["name"] for p in client.get("/api/products", params={"category": "Paint"}).json()]
    assert names == ["Blue Paint", "Red Paint"]
    assert client.get("/api/products", params={"category": "paint"}).json() == []
    assert len(client.get("/api/products").json()) == 4


def test_search_is_case_insensitive_substring(client):
    _seed(client)

    names = [p["name"] for p in client.get("/api/products/search", params={"name": "PAINT"}).json()]
    assert names == ["Blue Paint", "Red Paint"]
    assert len(client.get("/api/products/search").json()) == 4
    assert len(client.get("/api/products/search", params={"name": ""}).json()) == 4


def test_search_treats_percent_literally(client):
    _seed(client)

    names = [p["name"] for p in client.get("/api/products/search", params={"name": "0%"}).json()]
    assert names == ["100% Cotton Rag"]


def test_categories_are_distinct_and_sorted(client):
    _seed(client)

    assert client.get("/api/categories").json() == ["Cleaning", "Paint", "Parts"]


def test_get_single_product(client):
    products = _seed(client)
    widget = products["Widget"]

    assert client.get(f"/api/products/{widget['id']}").json() == widget
    assert client.get("/api/products/9999").status_code == 404


def test_create_product(client):
    response = client.post("/api/products", json={"name": " Ladder ", "stock": 2, "category": "Tools"})

    assert response.status_code == 201
    body = response.json()
    assert (body["name"], body["status"]) == ("Ladder", "In Stock")

    duplicate = client.post("/api/products", json={"name": "LADDER", "stock": 1})
    assert duplicate.status_code == 400
    assert duplicate.json() == {"detail": "Product name must be unique"}


def test_update_stock_to_zero_logs_change_and_derives_status(client):
    widget = _seed(client)["Widget"]

    response = client.put(f"/api/products/{widget['id']}", json=_put_body(widget, stock=0))

    assert response.status_code == 200
    assert response.json()["status"] == "Out of Stock"
    history = client.get(f"/api/products/{widget['id']}/history").json()
    assert len(history) == 1
    assert history[0]["productId"] == widget["id"]
    assert (history[0]["oldStock"], history[0]["newStock"]) == (10, 0)
    assert history[0]["changedBy"] == "admin"
    assert history[0]["timestamp"].endswith("Z")


def test_update_without_stock_change_logs_nothing(client):
    widget = _seed(client)["Widget"]

    response = client.put(f"/api/products/{widget['id']}", json=_put_body(widget, brand="NewCo"))

    assert response.json()["brand"] == "NewCo"
    assert client.get(f"/api/products/{widget['id']}/history").json() == []


def test_update_records_actor_header(client):
    widget = _seed(client)["Widget"]

    client.put(
        f"/api/products/{widget['id']}",
        json=_put_body(widget, stock=4),
        headers={"X-Changed-By": "warehouse-7"},
    )

    history = client.get(f"/api/products/{widget['id']}/history").json()
    assert history[0]["changedBy"] == "warehouse-7"


def test_history_newest_first(client):
    widget = _seed(client)["Widget"]

    client.put(f"/api/products/{widget['id']}", json=_put_body(widget, stock=7))
    client.put(f"/api/products/{widget['id']}", json=_put_body(widget, stock=2))

    history = client.get(f"/api/products/{widget['id']}/history").json()
    assert [(h["oldStock"], h["newStock"]) for h in history] == [(7, 2), (10, 7)]


def test_update_validation_errors(client):
    widget = _seed(client)["Widget"]
    url = f"/api/products/{widget['id']}"

    blank = client.put(url, json=_put_body(widget, name="   "))
    assert blank.status_code == 400
    assert blank.json() == {"errors": [{"field": "name", "message": "Name is required"}]}

    body = _put_body(widget)
    del body["stock"]
    missing = client.put(url, json=body)
    assert missing.status_code == 400
    assert missing.json() == {"errors": [{"field": "stock", "message": "Stock is required"}]}

    negative = client.put(url, json=_put_body(widget, stock=-1))
    assert negative.status_code == 400
    assert negative.json()["errors"][0]["field"] == "stock"

    fractional = client.put(url, json=_put_body(widget, stock=1.5))
    assert fractional.status_code == 400


def test_update_unknown_product(client):
    response = client.put("/api/products/9999", json={"name": "Ghost", "stock": 1})

    assert response.status_code == 404
    assert response.json() == {"detail": "Product not found"}


def test_update_name_collision_leaves_product_untouched(client):
    products = _seed(client)
    widget = products["Widget"]

    response = client.put(f"/api/products/{widget['id']}", json=_put_body(widget, name="red paint", stock=1))

    assert response.status_code == 400
    assert response.json() == {"detail": "Product name must be unique"}
    assert client.get(f"/api/products/{widget['id']}").json() == widget
    assert client.get(f"/api/products/{widget['id']}/history").json() == []


def test_strict_status_setting(client, monkeypatch):
    widget = _seed(client)["Widget"]
    monkeypatch.setattr(settings, "strict_status", True)

    response = client.put(f"/api/products/{widget['id']}", json=_put_body(widget, stock=0, status="In Stock"))

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "status"


def test_export_download(client):
    _seed(client)

    response = client.get("/api/products/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"] == 'attachment; filename="products.csv"'
    lines = response.text.split("\n")
    assert lines[0] == "name,unit,category,brand,stock,status,image"
    assert lines[1] == "Widget,pcs,Parts,Acme,10,In Stock,"
    assert lines[2] == "Blue Paint,can,Paint,Dulux,0,Out of Stock,/static/paint.png"
    assert len(lines) == 5


def test_export_then_import_reports_duplicates(client):
    _seed(client)
    exported = client.get("/api/products/export").text

    summary = _import(client, exported).json()

    assert summary["added"] == 0
    assert summary["skipped"] == 4
    assert len(summary["duplicates"]) == 4


def test_unhandled_errors_are_generic(client, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("secret connection string")

    monkeypatch.setattr("inventory_api.services.list_products", explode)
    with TestClient(client.app, raise_server_exceptions=False) as failing_client:
        response = failing_client.get("/api/products")

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
    assert "secret" not in response.text


def test_update_rename_onto_non_ascii_name_is_conflict(client):
    client.post("/api/products", json={"name": "Éclair", "stock": 2})
    other = client.post("/api/products", json={"name": "Other", "stock": 1}).json()

    response = client.put(f"/api/products/{other['id']}", json={"name": "Éclair", "stock": 1})

    assert response.status_code == 400
    assert response.json() == {"detail": "Product name must be unique"}


def test_import_non_ascii_repeat_is_reported_not_failed(client):
    first = _import(client, "name,stock\nÄpfel,3")
    second = _import(client, "name,stock\nÄpfel,4\nBirnen,1")

    assert first.json()["added"] == 1
    assert second.status_code == 200
    body = second.json()
    assert (body["added"], body["skipped"]) == (1, 1)
    assert body["duplicates"][0]["name"] == "Äpfel"


def test_search_endpoint_matches_non_ascii(client):
    _import(client, "name,stock\nÄpfel,3\nBirnen,1")

    names = [p["name"] for p in client.get("/api/products/search", params={"name": "Ä"}).json()]
    assert names == ["Äpfel"]


def test_update_rejects_boolean_stock(client):
    widget = _seed(client)["Widget"]

    response = client.put(f"/api/products/{widget['id']}", json=_put_body(widget, stock=True))

    assert response.status_code == 400
    assert response.json()["errors"] == [
        {"field": "stock", "message": "Stock must be a number greater than or equal to 0"}
    ]
