def test_submit_org_for_official_status(client, mock_db, auth_headers):
    mock_db.query_first.side_effect = [
        {"ok": 1},                                  # caller administers org
        {"thumbnail": "/images/t", "banner": "/images/b"},
        None,                                       # not official
        None,                                       # not pending
    ]

    response = client.post("/api/submit-official", json={"orgID": 5}, headers=auth_headers)

    assert response.status_code == 200
    sql, params = mock_db.execute.call_args[0]
    assert sql.startswith("INSERT INTO PENDING_SUBMISSION")
    assert params == (5, None)


def test_submit_event_for_official_status(client, mock_db, auth_headers):
    mock_db.query_first.side_effect = [{"ok": 1}, {"thumbnail": "/images/t", "banner": "/images/b"}, None, None]

    client.post("/api/submit-official", json={"eventID": 9}, headers=auth_headers)

    assert mock_db.execute.call_args[0][1] == (None, 9)
    assert "EVENT_ADMIN" in mock_db.query_first.call_args_list[0][0][0]


def test_submit_requires_exactly_one_target(client, auth_headers):
    assert client.post("/api/submit-official", json={}, headers=auth_headers).status_code == 400
    both = client.post("/api/submit-official", json={"orgID": 1, "eventID": 2}, headers=auth_headers)
    assert both.status_code == 400


def test_submit_not_admin(client, mock_db, auth_headers):
    response = client.post("/api/submit-official", json={"orgID": 5}, headers=auth_headers)

    assert response.status_code == 403
    mock_db.execute.assert_not_called()


def test_submit_missing_images(client, mock_db, auth_headers):
    mock_db.query_first.side_effect = [{"ok": 1}, {"thumbnail": "/images/t", "banner": ""}]

    response = client.post("/api/submit-official", json={"orgID": 5}, headers=auth_headers)

    assert response.status_code == 400


def test_submit_already_pending(client, mock_db, auth_headers):
    mock_db.query_first.side_effect = [{"ok": 1}, {"thumbnail": "t", "banner": "b"}, None, {"ok": 1}]

    response = client.post("/api/submit-official", json={"orgID": 5}, headers=auth_headers)

    assert response.status_code == 400
    assert response.get_json()["error"] == "Already pending official status review"


def test_submit_already_official(client, mock_db, auth_headers):
    mock_db.query_first.side_effect = [{"ok": 1}, {"thumbnail": "t", "banner": "b"}, {"ok": 1}, None]

    response = client.post("/api/submit-official", json={"orgID": 5}, headers=auth_headers)

    assert response.status_code == 400
    assert response.get_json()["error"] == "Already has official status"


def test_check_official(client, mock_db):
    mock_db.query_first.side_effect = [{"ok": 1}, None]

    response = client.get("/api/check-official?eventID=9")

    assert response.get_json() == {"success": True, "isOfficial": True, "isPending": False}
    assert "OFFICIAL_EVENTS" in mock_db.query_first.call_args_list[0][0][0]


def test_check_official_requires_target(client):
    assert client.get("/api/check-official").status_code == 400


STAFF = {"ok": 1}


def test_pending_submissions(client, mock_db, auth_headers):
    mock_db.query_first.return_value = STAFF
    mock_db.query.side_effect = [
        [{"submission_id": 1, "org_id": 5}],
        [{"submission_id": 2, "event_id": 9}],
    ]

    response = client.get("/api/admin/pending-submissions", headers=auth_headers)

    data = response.get_json()
    assert data["pendingOrganizations"] == [{"submission_id": 1, "org_id": 5}]
    assert data["pendingEvents"] == [{"submission_id": 2, "event_id": 9}]
    sql, params = mock_db.query_first.call_args_list[0][0]
    assert "FROM STAFF" in sql
    assert params == (1,)


def test_pending_submissions_unauthorized(client):
    assert client.get("/api/admin/pending-submissions").status_code == 401


def test_pending_submissions_not_staff(client, mock_db, auth_headers):
    response = client.get("/api/admin/pending-submissions", headers=auth_headers)

    assert response.status_code == 403
    assert response.get_json() == {"success": False, "error": "Staff access required"}
    mock_db.query.assert_not_called()


def test_pending_counts(client, mock_db, auth_headers):
    mock_db.query_first.side_effect = [STAFF, {"count": 4}, {"count": 2}]

    response = client.get("/api/admin/pending-counts", headers=auth_headers)

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "pendingOrganizations": 4, "pendingEvents": 2}


def test_pending_counts_not_staff(client, auth_headers):
    response = client.get("/api/admin/pending-counts", headers=auth_headers)
    assert response.status_code == 403


def test_get_org_submission(client, mock_db, auth_headers):
    mock_db.query_first.side_effect = [
        STAFF,
        {"submission_id": 1, "org_id": 5, "event_id": None},
        {"org_id": 5, "name": "Chess Club"},
        {"count": 12},
        {"count": 3},
    ]

    response = client.get("/api/admin/submissions/1", headers=auth_headers)

    data = response.get_json()
    assert data["type"] == "organization"
    assert data["details"]["member_count"] == 12
    assert data["details"]["events_count"] == 3


def test_get_event_submission(client, mock_db, auth_headers):
    mock_db.query_first.side_effect = [
        STAFF,
        {"submission_id": 2, "org_id": None, "event_id": 9},
        {"event_id": 9, "title": "Spring Open"},
    ]
    mock_db.query.return_value = [{"rsvp_status": "attending", "count": 4}, {"rsvp_status": "maybe", "count": 1}]

    response = client.get("/api/admin/submissions/2", headers=auth_headers)

    data = response.get_json()
    assert data["type"] == "event"
    assert data["details"]["rsvp_counts"] == {"attending": 4, "maybe": 1}


def test_get_submission_not_found(client, mock_db, auth_headers):
    mock_db.query_first.side_effect = [STAFF, None]

    response = client.get("/api/admin/submissions/77", headers=auth_headers)
    assert response.status_code == 404


def test_get_submission_not_staff(client, mock_db, auth_headers):
    response = client.get("/api/admin/submissions/1", headers=auth_headers)

    assert response.status_code == 403
    assert mock_db.query_first.call_count == 1


def test_approve_submission_is_one_batch(client, mock_db, auth_headers):
    mock_db.query_first.side_effect = [STAFF, {"submission_id": 1, "org_id": 5, "event_id": None}]

    response = client.post(
        "/api/admin/submissions/decision", json={"submissionID": 1, "approved": True}, headers=auth_headers
    )

    assert response.get_json()["message"] == "Official status approved"
    mock_db.batch.assert_called_once_with([
        ("INSERT INTO OFFICIAL_ORGS (org_id) VALUES (%s);", (5,)),
        ("DELETE FROM PENDING_SUBMISSION WHERE submission_id = %s;", (1,)),
    ])
    mock_db.execute.assert_not_called()


def test_approve_event_submission(client, mock_db, auth_headers):
    mock_db.query_first.side_effect = [STAFF, {"submission_id": 2, "org_id": None, "event_id": 9}]

    client.post("/api/admin/submissions/decision", json={"submissionID": 2, "approved": True}, headers=auth_headers)

    grant, _ = mock_db.batch.call_args[0][0]
    assert grant == ("INSERT INTO OFFICIAL_EVENTS (event_id) VALUES (%s);", (9,))


def test_reject_submission(client, mock_db, auth_headers):
    mock_db.query_first.side_effect = [STAFF, {"submission_id": 1, "org_id": 5, "event_id": None}]

    response = client.post(
        "/api/admin/submissions/decision", json={"submissionID": 1, "approved": False}, headers=auth_headers
    )

    assert response.get_json()["message"] == "Official status rejected"
    mock_db.execute.assert_called_once_with("DELETE FROM PENDING_SUBMISSION WHERE submission_id = %s;", (1,))
    mock_db.batch.assert_not_called()


def test_decision_unknown_submission(client, mock_db, auth_headers):
    mock_db.query_first.side_effect = [STAFF, None]

    response = client.post(
        "/api/admin/submissions/decision", json={"submissionID": 1, "approved": True}, headers=auth_headers
    )
    assert response.status_code == 404


def test_decision_not_staff(client, mock_db, auth_headers):
    response = client.post(
        "/api/admin/submissions/decision", json={"submissionID": 1, "approved": True}, headers=auth_headers
    )

    assert response.status_code == 403
    assert response.get_json()["error"] == "Staff access required"
    mock_db.batch.assert_not_called()
    mock_db.execute.assert_not_called()
