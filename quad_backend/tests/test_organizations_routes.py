import io


def org_form(**overrides):
    form = {"name": "Chess Club", "description": "Knights and bishops", "privacy": "public"}
    form.update(overrides)
    return form


def test_register_organization(client, mock_db, storage, auth_headers):
    mock_db.execute.return_value = {"success": True, "changes": 1, "last_insert_id": 5}

    response = client.post(
        "/api/register-organization",
        data=org_form(
            thumbnail=(io.BytesIO(b"thumb"), "t.png", "image/png"),
            banner=(io.BytesIO(b"banner"), "b.png", "image/png"),
        ),
        headers=auth_headers,
        content_type="multipart/form-data",
    )

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "message": "Organization created successfully", "orgID": 5}

    assert set(storage.objects) == {"thumbnails/Thumb_Chess_Club", "banners/Banner_Chess_Club"}
    insert_org, insert_admin = [c.args for c in mock_db.execute.call_args_list]
    assert insert_org[1] == (
        "Chess Club", "Knights and bishops",
        "/images/thumbnails/Thumb_Chess_Club", "/images/banners/Banner_Chess_Club", "public",
    )
    assert insert_admin[1] == (5, 1)


def test_register_organization_for_official_status(client, mock_db, auth_headers):
    mock_db.execute.return_value = {"success": True, "changes": 1, "last_insert_id": 5}

    response = client.post(
        "/api/register-organization",
        data=org_form(
            submitForOfficialStatus="true",
            thumbnail=(io.BytesIO(b"thumb"), "t.png", "image/png"),
            banner=(io.BytesIO(b"banner"), "b.png", "image/png"),
        ),
        headers=auth_headers,
        content_type="multipart/form-data",
    )

    assert response.status_code == 200
    sql, params = mock_db.execute.call_args[0]
    assert "PENDING_SUBMISSION" in sql
    assert params == (5,)


def test_register_organization_official_requires_images(client, mock_db, auth_headers):
    response = client.post(
        "/api/register-organization",
        data=org_form(submitForOfficialStatus="true"),
        headers=auth_headers,
        content_type="multipart/form-data",
    )

    assert response.status_code == 400
    mock_db.execute.assert_not_called()


def test_register_organization_missing_name(client, auth_headers):
    response = client.post("/api/register-organization", json={"description": "x"}, headers=auth_headers)
    assert response.status_code == 400


def test_register_organization_duplicate_name(client, mock_db, auth_headers):
    mock_db.query_first.return_value = {"org_id": 2}

    response = client.post("/api/register-organization", json=org_form(), headers=auth_headers)

    assert response.status_code == 400
    assert response.get_json()["error"] == "Organization name already exists"


def test_register_organization_unauthorized(client):
    response = client.post("/api/register-organization", json=org_form())
    assert response.status_code == 401


def test_check_organization_name(client, mock_db):
    response = client.get("/api/check-organization-name?name=Chess%20Club")
    assert response.get_json() == {"success": True, "exists": False}


def test_user_organizations_from_token(client, mock_db, auth_headers):
    mock_db.query.return_value = [{"org_id": 5, "name": "Chess Club"}]

    response = client.get("/api/user-organizations", headers=auth_headers)

    assert response.get_json()["organizations"] == [{"org_id": 5, "name": "Chess Club"}]
    assert mock_db.query.call_args[0][1] == (1,)


def test_user_member_organizations_from_query(client, mock_db):
    response = client.get("/api/user-member-organizations?userID=8")

    assert response.status_code == 200
    assert mock_db.query.call_args[0][1] == ("8",)


def test_user_organizations_requires_user(client):
    response = client.get("/api/user-organizations")
    assert response.status_code == 400


def test_list_organizations(client, mock_db):
    mock_db.query.return_value = [{"org_id": 1, "name": "A", "member_count": 3}]

    response = client.get("/api/organizations")

    assert response.get_json()["organizations"][0]["member_count"] == 3


def test_public_banners(client, mock_db):
    mock_db.query.return_value = [{"org_id": 1, "name": "A", "banner": "/images/banners/Banner_A"}]

    response = client.get("/api/organizations/public/banners")

    assert response.get_json() == {
        "success": True,
        "banners": [{"org_id": 1, "name": "A", "banner": "/images/banners/Banner_A"}],
    }
    assert "privacy = 'public'" in mock_db.query.call_args[0][0]


def test_get_organization(client, mock_db):
    mock_db.query_first.return_value = {"org_id": 5, "name": "Chess Club", "member_count": 2}
    mock_db.query.return_value = [{"id": 1, "email": "a@b.com"}]

    response = client.get("/api/organizations/5")

    organization = response.get_json()["organization"]
    assert organization["member_count"] == 2
    assert organization["admins"] == [{"id": 1, "email": "a@b.com"}]


def test_get_organization_not_found(client):
    response = client.get("/api/organizations/404")
    assert response.status_code == 404
    assert response.get_json() == {"success": False, "error": "Organization not found"}


def test_get_organization_events(client, mock_db):
    mock_db.query.return_value = [{"event_id": 1}, {"event_id": 2}]

    response = client.get("/api/organizations/5/events")

    assert len(response.get_json()["events"]) == 2
    assert mock_db.query.call_args[0][1] == (5,)


def test_delete_organization(client, mock_db, auth_headers):
    mock_db.query_first.return_value = {"ok": 1}

    response = client.delete("/api/organizations/5", headers=auth_headers)

    assert response.status_code == 200
    statements = mock_db.batch.call_args[0][0]
    assert statements[-1] == ("DELETE FROM ORGANIZATION WHERE org_id = %s;", (5,))
    assert all(params == (5,) for _, params in statements)


def test_delete_organization_forbidden(client, mock_db, auth_headers):
    response = client.delete("/api/organizations/5", headers=auth_headers)

    assert response.status_code == 403
    mock_db.batch.assert_not_called()
