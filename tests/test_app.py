import sqlite3


def add(client, **overrides):
    data = {"employee_name": "Ann", "date": "2024-05-01", "hours": "8", "task": "QA"}
    data.update(overrides)
    return client.post("/entries", data=data)


def test_index_links_both_trackers(client):
    body = client.get("/").get_data(as_text=True)
    assert "/entries" in body
    assert "/calendar" in body


def test_empty_entry_list(client):
    body = client.get("/entries").get_data(as_text=True)
    assert "No entries found. Start tracking your hours now!" in body


def test_add_entry(client):
    resp = add(client)
    assert resp.status_code == 302

    body = client.get("/entries").get_data(as_text=True)
    assert "Entry added successfully." in body
    assert "QA" in body
    assert client.get("/api/entries").get_json() == [
        {"employeeName": "Ann", "date": "2024-05-01", "hours": "8", "task": "QA"}
    ]


def test_add_entry_with_missing_field_warns(client):
    resp = add(client, task="")
    assert resp.status_code == 200
    body = resp.get_data(as_text=True)
    assert "All fields are required." in body
    # typed values are kept in the form
    assert 'value="Ann"' in body
    assert client.get("/api/entries").get_json() == []


def test_delete_and_clear(client):
    add(client, employee_name="Ann")
    add(client, employee_name="Bob")
    add(client, employee_name="Cal")

    client.post("/entries/1/delete")
    names = [e["employeeName"] for e in client.get("/api/entries").get_json()]
    assert names == ["Ann", "Cal"]

    resp = client.post("/entries/clear", follow_redirects=True)
    assert "All entries cleared." in resp.get_data(as_text=True)
    assert client.get("/api/entries").get_json() == []


def test_entries_survive_a_new_client(app, client):
    add(client)
    other = app.test_client()
    assert len(other.get("/api/entries").get_json()) == 1


def test_api_entries(client):
    resp = client.post("/api/entries", json={"employeeName": "Ann", "date": "2024-05-01", "hours": "8", "task": ""})
    assert resp.status_code == 400
    assert resp.get_json()["problems"] == ["Task is required."]

    resp = client.post("/api/entries", json={"employeeName": "Ann", "date": "2024-05-01", "hours": "8", "task": "QA"})
    assert resp.status_code == 201

    assert client.delete("/api/entries/5").status_code == 404
    resp = client.delete("/api/entries/0")
    assert resp.status_code == 200
    assert resp.get_json() == []


def test_csv_export(client):
    add(client)
    resp = client.get("/entries.csv")
    assert resp.mimetype == "text/csv"
    assert resp.get_data(as_text=True).splitlines() == [
        "employeeName,date,hours,task",
        "Ann,2024-05-01,8,QA",
    ]


def test_calendar_requires_login(client):
    body = client.get("/calendar?year=2024&month=5").get_data(as_text=True)
    assert 'name="username"' in body
    assert client.get("/api/hours").status_code == 401


def test_blank_login_stays_logged_out(client):
    client.post("/login", data={"username": "  ", "year": "2024", "month": "5"})
    assert client.get("/api/hours").status_code == 401


def test_calendar_flow(client):
    resp = client.post("/login", data={"username": "ann", "year": "2024", "month": "5"})
    assert resp.status_code == 302

    body = client.get("/calendar?year=2024&month=5").get_data(as_text=True)
    assert "June 2024" in body
    assert "ann" in body

    resp = client.post("/calendar/hours", json={"year": 2024, "month": 5, "day": 3, "hours": "8"})
    assert resp.status_code == 200
    resp = client.post("/calendar/hours", json={"year": 2024, "month": 5, "day": 4, "hours": "4"})
    payload = resp.get_json()
    assert payload["hours"] == {"3": "8", "4": "4"}
    assert payload["month_total"] == 12
    assert payload["week_totals"][1] == 12

    resp = client.post("/calendar/hours", json={"year": 2024, "month": 5, "day": 1, "hours": "5"})
    assert resp.status_code == 400
    assert client.get("/api/hours?year=2024&month=5").get_json()["month_total"] == 12

    resp = client.post(
        "/calendar/hours",
        data={"year": "2024", "month": "5", "day": "5", "hours": "6"},
        follow_redirects=True,
    )
    assert '<strong class="month-total">18</strong>' in resp.get_data(as_text=True)


def test_month_navigation_links(client):
    client.post("/login", data={"username": "ann", "year": "2024", "month": "0"})
    body = client.get("/calendar?year=2024&month=0").get_data(as_text=True)
    assert "year=2023&amp;month=11" in body
    assert "year=2024&amp;month=1" in body


def test_logout(client):
    client.post("/login", data={"username": "ann"})
    assert client.get("/api/hours").status_code == 200
    client.post("/logout")
    assert client.get("/api/hours").status_code == 401


def test_weekend_edit_from_form_flashes_error(client):
    client.post("/login", data={"username": "ann"})
    resp = client.post(
        "/calendar/hours",
        data={"year": "2024", "month": "5", "day": "2", "hours": "5"},
        follow_redirects=True,
    )
    assert "Weekend days cannot be edited." in resp.get_data(as_text=True)


def test_editing_while_logged_out(client):
    resp = client.post("/calendar/hours", json={"year": 2024, "month": 5, "day": 3, "hours": "8"})
    assert resp.status_code == 401


def test_unreadable_storage_surfaces_generic_error(app, client):
    conn = sqlite3.connect(app.config["DATABASE"])
    conn.execute("INSERT INTO kv_items (key, value) VALUES (?, ?)", ("hoursTracking", "{broken"))
    conn.commit()
    conn.close()

    resp = client.get("/api/entries")
    assert resp.status_code == 500
    assert "could not be saved or loaded" in resp.get_json()["error"]

    resp = client.get("/entries")
    assert resp.status_code == 500
    assert "Something went wrong" in resp.get_data(as_text=True)
