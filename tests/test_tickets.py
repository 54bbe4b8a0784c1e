from servicedesk.models import TicketModel


def _error_message(resp):
    return resp.json()["detail"]["error"]["message"]


def _reload(db_session, ticket_id):
    db_session.expire_all()
    return db_session.get(TicketModel, ticket_id)


def test_employee_creates_pending_unassigned_ticket(client, auth_headers, create_user, db_session):
    headers, employee = auth_headers("employee", department="HR")
    staff = create_user("it_staff")

    r = client.post("/api/tickets", json={
        "title": "Test Issue",
        "description": "This is a test problem description.",
        "priority": "Sedang",
        "department": "IT",
        "status": "finished",
        "assigned_to": staff.id,
        "created_by": staff.id,
    }, headers=headers)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["status"] == "pending"
    assert body["status_label"] == "Pending"
    assert body["assigned_to"] is None
    assert body["created_by"] == employee.id
    assert body["priority"] == "Sedang"
    assert body["priority_label"] == "Medium"
    assert body["department"] == "IT"
    assert body["attachments"] == []

    stored = _reload(db_session, body["id"])
    assert stored.status == "pending"
    assert stored.assigned_to is None


def test_non_employees_cannot_create(client, auth_headers):
    for role in ("it_staff", "it_manager"):
        headers, _ = auth_headers(role)
        r = client.post("/api/tickets", json={"title": "x", "description": "y", "priority": "Rendah", "department": "IT"}, headers=headers)
        assert r.status_code == 403
        assert _error_message(r) == "Only employees can create tickets."

        r = client.get("/api/tickets/create", headers=headers)
        assert r.status_code == 403


def test_create_form_for_employee(client, auth_headers):
    headers, _ = auth_headers("employee", department="Finance")
    r = client.get("/api/tickets/create", headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body["user_department"] == "Finance"
    assert body["priorities"] == ["Rendah", "Sedang", "Tinggi"]
    assert body["max_attachments"] == 5
    assert body["max_attachment_size"] == 2 * 1024 * 1024


def test_show_is_visibility_gated(client, create_user, login, make_ticket):
    owner = create_user("employee")
    other = create_user("employee")
    staff = create_user("it_staff")
    other_staff = create_user("it_staff")
    manager = create_user("it_manager")
    ticket = make_ticket(owner, assignee=staff)

    assert client.get(f"/api/tickets/{ticket.id}", headers=login(owner)).status_code == 200
    assert client.get(f"/api/tickets/{ticket.id}", headers=login(staff)).status_code == 200

    r = client.get(f"/api/tickets/{ticket.id}", headers=login(other))
    assert r.status_code == 403
    assert _error_message(r) == "You can only view your own tickets."

    r = client.get(f"/api/tickets/{ticket.id}", headers=login(other_staff))
    assert r.status_code == 403
    assert _error_message(r) == "You can only view tickets assigned to you."

    r = client.get(f"/api/tickets/{ticket.id}", headers=login(manager))
    assert r.status_code == 200
    body = r.json()
    assert body["ticket"]["creator"]["id"] == owner.id
    assert body["ticket"]["assignee"]["id"] == staff.id
    assert body["user_role"] == "it_manager"
    assert sorted(u["id"] for u in body["it_staff"]) == sorted([staff.id, other_staff.id])


def test_it_staff_list_only_shown_to_managers(client, create_user, login, make_ticket):
    owner = create_user("employee")
    staff = create_user("it_staff")
    ticket = make_ticket(owner, assignee=staff)

    assert client.get(f"/api/tickets/{ticket.id}", headers=login(owner)).json()["it_staff"] == []
    assert client.get(f"/api/tickets/{ticket.id}", headers=login(staff)).json()["it_staff"] == []


def test_missing_ticket_is_404(client, auth_headers):
    headers, _ = auth_headers("it_manager")
    r = client.get("/api/tickets/9999", headers=headers)
    assert r.status_code == 404
    assert r.json()["detail"]["error"]["code"] == "ticket_not_found"
    assert client.patch("/api/tickets/9999", json={"status": "finished"}, headers=headers).status_code == 404
    assert client.delete("/api/tickets/9999", headers=headers).status_code == 404


def test_edit_form_access(client, create_user, login, make_ticket):
    owner = create_user("employee")
    staff = create_user("it_staff")
    other_staff = create_user("it_staff")
    manager = create_user("it_manager")
    ticket = make_ticket(owner, assignee=staff)

    r = client.get(f"/api/tickets/{ticket.id}/edit", headers=login(owner))
    assert r.status_code == 403
    assert _error_message(r) == "You cannot edit tickets."

    r = client.get(f"/api/tickets/{ticket.id}/edit", headers=login(other_staff))
    assert r.status_code == 403
    assert _error_message(r) == "You can only edit tickets assigned to you."

    r = client.get(f"/api/tickets/{ticket.id}/edit", headers=login(staff))
    assert r.status_code == 200
    assert r.json()["statuses"] == ["pending", "in_progress", "finished"]
    assert r.json()["it_staff"] == []

    r = client.get(f"/api/tickets/{ticket.id}/edit", headers=login(manager))
    assert r.status_code == 200
    assert len(r.json()["it_staff"]) == 2


def test_employee_cannot_update_even_own_ticket(client, create_user, login, make_ticket, db_session):
    owner = create_user("employee")
    ticket = make_ticket(owner)

    r = client.patch(f"/api/tickets/{ticket.id}", json={"status": "finished"}, headers=login(owner))
    assert r.status_code == 403
    assert _reload(db_session, ticket.id).status == "pending"


def test_staff_updates_only_assigned_tickets(client, create_user, login, make_ticket, db_session):
    owner = create_user("employee")
    staff = create_user("it_staff")
    other_staff = create_user("it_staff")
    ticket = make_ticket(owner, assignee=staff)

    r = client.patch(f"/api/tickets/{ticket.id}", json={"status": "in_progress"}, headers=login(other_staff))
    assert r.status_code == 403
    assert _reload(db_session, ticket.id).status == "pending"

    r = client.patch(f"/api/tickets/{ticket.id}", json={"status": "in_progress"}, headers=login(staff))
    assert r.status_code == 200
    assert r.json()["status"] == "in_progress"
    assert _reload(db_session, ticket.id).status == "in_progress"


def test_staff_assignment_field_is_ignored(client, create_user, login, make_ticket, db_session):
    owner = create_user("employee")
    staff = create_user("it_staff")
    other_staff = create_user("it_staff")
    ticket = make_ticket(owner, assignee=staff)

    r = client.patch(f"/api/tickets/{ticket.id}", json={"status": "in_progress", "assigned_to": other_staff.id}, headers=login(staff))
    assert r.status_code == 200
    stored = _reload(db_session, ticket.id)
    assert stored.status == "in_progress"
    assert stored.assigned_to == staff.id


def test_manager_sets_status_and_assignment(client, create_user, login, make_ticket, db_session):
    owner = create_user("employee")
    staff = create_user("it_staff")
    manager = create_user("it_manager")
    ticket = make_ticket(owner)

    r = client.patch(f"/api/tickets/{ticket.id}", json={"status": "in_progress", "assigned_to": staff.id}, headers=login(manager))
    assert r.status_code == 200, r.text
    stored = _reload(db_session, ticket.id)
    assert stored.status == "in_progress"
    assert stored.assigned_to == staff.id

    # The assigned staff member now sees it
    listed = client.get("/api/tickets", headers=login(staff)).json()["data"]
    assert [t["id"] for t in listed] == [ticket.id]


def test_manager_can_unassign_and_move_status_backwards(client, create_user, login, make_ticket, db_session):
    owner = create_user("employee")
    staff = create_user("it_staff")
    manager = create_user("it_manager")
    ticket = make_ticket(owner, assignee=staff, status="finished")

    r = client.patch(f"/api/tickets/{ticket.id}", json={"status": "pending", "assigned_to": None}, headers=login(manager))
    assert r.status_code == 200
    stored = _reload(db_session, ticket.id)
    assert stored.status == "pending"
    assert stored.assigned_to is None


def test_manager_status_only_update_keeps_assignee(client, create_user, login, make_ticket, db_session):
    owner = create_user("employee")
    staff = create_user("it_staff")
    manager = create_user("it_manager")
    ticket = make_ticket(owner, assignee=staff)

    r = client.patch(f"/api/tickets/{ticket.id}", json={"status": "finished"}, headers=login(manager))
    assert r.status_code == 200
    assert _reload(db_session, ticket.id).assigned_to == staff.id


def test_manager_cannot_assign_to_non_staff(client, create_user, login, make_ticket, db_session):
    owner = create_user("employee")
    manager = create_user("it_manager")
    ticket = make_ticket(owner)
    headers = login(manager)

    for bad_id in (owner.id, manager.id, 9999):
        r = client.patch(f"/api/tickets/{ticket.id}", json={"status": "in_progress", "assigned_to": bad_id}, headers=headers)
        assert r.status_code == 400
        assert r.json()["detail"]["error"]["code"] == "invalid_assignee"

    stored = _reload(db_session, ticket.id)
    assert stored.status == "pending"
    assert stored.assigned_to is None


def test_invalid_status_is_rejected_and_not_stored(client, create_user, login, make_ticket, db_session):
    owner = create_user("employee")
    manager = create_user("it_manager")
    ticket = make_ticket(owner)

    r = client.patch(f"/api/tickets/{ticket.id}", json={"status": "closed"}, headers=login(manager))
    assert r.status_code == 422
    body = r.json()
    assert body["error"]["code"] == "validation_error"
    assert body["error"]["details"][0]["loc"] == ["status"]
    assert _reload(db_session, ticket.id).status == "pending"


def test_delete_is_manager_only(client, create_user, login, make_ticket, db_session):
    owner = create_user("employee")
    staff = create_user("it_staff")
    manager = create_user("it_manager")
    ticket = make_ticket(owner, assignee=staff)

    for user in (owner, staff):
        r = client.delete(f"/api/tickets/{ticket.id}", headers=login(user))
        assert r.status_code == 403
        assert _error_message(r) == "Only IT managers can delete tickets."
    assert _reload(db_session, ticket.id) is not None

    r = client.delete(f"/api/tickets/{ticket.id}", headers=login(manager))
    assert r.status_code == 204
    assert _reload(db_session, ticket.id) is None


VALID_TICKET = {"title": "VPN down", "description": "Cannot connect from home", "priority": "Rendah", "department": "Finance"}


def _details(resp):
    assert resp.status_code == 422, resp.text
    return {tuple(d["loc"]): (d["type"], d["msg"]) for d in resp.json()["error"]["details"]}


def test_missing_fields_are_reported_as_required(client, auth_headers, db_session):
    headers, _ = auth_headers("employee")

    details = _details(client.post("/api/tickets", json={"priority": "Rendah"}, headers=headers))
    assert details == {
        ("title",): ("missing", "Ticket title is required."),
        ("description",): ("missing", "Problem description is required."),
        ("department",): ("missing", "Department is required."),
    }

    details = _details(client.post("/api/tickets", json={"title": "VPN down"}, headers=headers))
    assert details[("priority",)] == ("missing", "Priority level is required.")
    assert _reload(db_session, 1) is None


def test_blank_fields_count_as_missing(client, auth_headers):
    headers, _ = auth_headers("employee")
    data = dict(VALID_TICKET, description="  ", department="")

    details = _details(client.post("/api/tickets", data=data, headers=headers))
    assert details == {
        ("description",): ("string_too_short", "Problem description is required."),
        ("department",): ("string_too_short", "Department is required."),
    }


def test_title_and_department_length_limits(client, auth_headers, db_session):
    headers, _ = auth_headers("employee")

    details = _details(client.post("/api/tickets", json=dict(VALID_TICKET, title="t" * 256, department="d" * 256), headers=headers))
    assert details == {
        ("title",): ("string_too_long", "Ticket title must not exceed 255 characters."),
        ("department",): ("string_too_long", "Department must not exceed 255 characters."),
    }
    assert _reload(db_session, 1) is None

    r = client.post("/api/tickets", json=dict(VALID_TICKET, title="t" * 255, department="d" * 255), headers=headers)
    assert r.status_code == 201


def test_unknown_priority_lists_the_choices(client, auth_headers):
    headers, _ = auth_headers("employee")

    details = _details(client.post("/api/tickets", json=dict(VALID_TICKET, priority="Urgent"), headers=headers))
    assert details == {("priority",): ("enum", "Priority must be one of: Rendah, Sedang, Tinggi.")}


def test_field_sent_as_file_is_not_echoed_back(client, auth_headers):
    headers, _ = auth_headers("employee")
    data = {k: v for k, v in VALID_TICKET.items() if k != "title"}

    r = client.post("/api/tickets", data=data, files=[("title", ("t.txt", b"hello", "text/plain"))], headers=headers)
    details = r.json()["error"]["details"]
    assert _details(r) == {("title",): ("string_type", "Ticket title must be text.")}
    assert all(set(d) == {"loc", "msg", "type"} for d in details)
