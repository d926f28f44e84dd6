from quoteflow.database import SessionLocal
from quoteflow.models.contact import Contact
from quoteflow.models.workflow_execution import WorkflowExecution


def _contact_by_email(email):
    db = SessionLocal()
    try:
        return db.query(Contact).filter_by(email=email).one()
    finally:
        db.close()


def test_email_received_requires_auth(client):
    r = client.post("/events/email-received", json={"widget_id": "widget-1", "from_email": "a@b.com"})
    assert r.status_code == 401


def test_email_received_runs_matching_workflows(client, auth_headers, workflow_factory, make_graph):
    nodes, edges = make_graph(
        {"triggerType": "Email received", "widgetId": "widget-1"},
        {"actionType": "Add tag", "tagName": "inbound-{{inbound.subject}}"},
        {"actionType": "Send email", "emailBody": "Thanks!"},
    )
    workflow = workflow_factory(nodes=nodes, edges=edges)

    r = client.post(
        "/events/email-received",
        json={"widget_id": "widget-1", "from_email": "New@Customer.com", "from_name": "Sam Lee", "subject": "gutters"},
        headers=auth_headers(1),
    )
    assert r.status_code == 200, r.text

    runs = r.json()["runs"]
    assert len(runs) == 1
    assert runs[0]["workflow_id"] == workflow.id
    # No mail integration connected; the tag step still ran
    assert runs[0]["status"] == "error"
    assert runs[0]["error_message"] == "No mailing integration connected"

    contact = _contact_by_email("new@customer.com")
    assert contact.name == "Sam Lee"
    assert contact.widget_id == "widget-1"
    assert contact.tags == ["inbound-gutters"]


def test_email_received_is_scoped_to_token_account(client, auth_headers, workflow_factory, make_graph):
    nodes, edges = make_graph({"triggerType": "Email received", "widgetId": "widget-1"}, {"actionType": "Add tag", "tagName": "x"})
    workflow_factory(nodes=nodes, edges=edges, account_id=1)

    r = client.post(
        "/events/email-received",
        json={"widget_id": "widget-1", "from_email": "a@b.com"},
        headers=auth_headers(2),
    )
    assert r.status_code == 200
    assert r.json()["runs"] == []


def test_add_tag_fires_tag_workflows_once(client, auth_headers, contact_factory, workflow_factory, make_graph):
    contact = contact_factory(tags=[])
    nodes, edges = make_graph(
        {"triggerType": "Tag added", "widgetId": "widget-1", "tagName": "vip"},
        {"actionType": "Add tag", "tagName": "vip-welcomed"},
    )
    workflow = workflow_factory(nodes=nodes, edges=edges)
    # Would match the tag the workflow itself adds if workflow tags re-fired triggers
    any_nodes, any_edges = make_graph(
        {"triggerType": "Tag added", "widgetId": "widget-1", "tagName": "vip-welcomed"},
        {"actionType": "Add tag", "tagName": "loop"},
    )
    workflow_factory(nodes=any_nodes, edges=any_edges)

    r = client.post(f"/contacts/{contact.id}/tags", json={"tag": "vip"}, headers=auth_headers(1))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["added"] is True
    assert [run["workflow_id"] for run in body["runs"]] == [workflow.id]
    assert body["runs"][0]["status"] == "success"

    assert _contact_by_email("jane@x.com").tags == ["vip", "vip-welcomed"]

    again = client.post(f"/contacts/{contact.id}/tags", json={"tag": "vip"}, headers=auth_headers(1))
    assert again.json()["added"] is False
    assert again.json()["runs"] == []

    db = SessionLocal()
    try:
        assert db.query(WorkflowExecution).count() == 1
    finally:
        db.close()


def test_add_tag_to_other_accounts_contact_404(client, auth_headers, contact_factory):
    contact = contact_factory(account_id=1)
    r = client.post(f"/contacts/{contact.id}/tags", json={"tag": "vip"}, headers=auth_headers(2))
    assert r.status_code == 404


def test_add_blank_tag_400(client, auth_headers, contact_factory):
    contact = contact_factory()
    r = client.post(f"/contacts/{contact.id}/tags", json={"tag": "  "}, headers=auth_headers(1))
    assert r.status_code == 400
