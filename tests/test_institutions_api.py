import models
from responses import compute_etag


def vary_values(response):
    return [value.strip() for value in response.headers.get("vary", "").split(",")]


def test_health(client):
    assert client.get("/").json() == {"status": "ok", "service": "university-search-backend"}


def test_search_envelope(client, catalog):
    response = client.get("/institutions")
    assert response.status_code == 200
    body = response.json()
    assert body["pagination"] == {"total": 7, "offset": 0, "limit": 20, "hasMore": False}
    assert len(body["data"]) == 7

    first = body["data"][0]
    assert first["institution_name"] == "Cornell University"
    assert first["city"]["name"] == "Ithaca"
    assert first["city"]["state"]["name"] == "New York"
    assert first["control"]["description"] == "Private nonprofit"
    assert first["admission_cycles"][0]["year_admissions"] == 2023


def test_search_headers(client, catalog):
    response = client.get("/institutions")
    assert response.headers["cache-control"] == "public, s-maxage=300, stale-while-revalidate=600"
    assert response.headers["etag"].startswith('"') and response.headers["etag"].endswith('"')
    assert "Authorization" in vary_values(response)
    assert response.headers["etag"] == f'"{compute_etag(response.content)}"'


def test_search_example_from_docs(client, catalog):
    response = client.get("/institutions", params={"state": "California", "min_rank": 1, "max_rank": 50})
    body = response.json()
    assert body["pagination"]["total"] == 3
    assert [row["rank"] for row in body["data"]] == [15, 20, 28]


def test_search_paging(client, catalog):
    body = client.get("/institutions", params={"limit": 2, "offset": 0}).json()
    assert body["pagination"] == {"total": 7, "offset": 0, "limit": 2, "hasMore": True}
    assert len(body["data"]) == 2

    body = client.get("/institutions", params={"limit": 2, "offset": 6}).json()
    assert body["pagination"]["hasMore"] is False
    assert len(body["data"]) == 1


def test_search_boolean_and_sort_params(client, catalog):
    body = client.get("/institutions", params={"only_ranked": "true", "sort": "rank_desc"}).json()
    assert body["pagination"]["total"] == 5
    assert body["data"][0]["institution_name"] == "New York City College"


def test_empty_params_are_ignored(client, catalog):
    body = client.get("/institutions", params={"state": "", "query": ""}).json()
    assert body["pagination"]["total"] == 7


def test_identical_requests_share_etag(client, catalog):
    first = client.get("/institutions", params={"major": "Economics"})
    second = client.get("/institutions", params={"major": "Economics"})
    assert first.content == second.content
    assert first.headers["etag"] == second.headers["etag"]


def test_different_results_have_different_etags(client, catalog):
    first = client.get("/institutions", params={"major": "Economics"})
    second = client.get("/institutions", params={"major": "Nursing"})
    assert first.headers["etag"] != second.headers["etag"]


def test_not_modified(client, catalog):
    etag = client.get("/institutions").headers["etag"]
    response = client.get("/institutions", headers={"If-None-Match": etag})
    assert response.status_code == 304
    assert response.content == b""
    assert response.headers["etag"] == etag
    assert response.headers["cache-control"] == "public, s-maxage=300, stale-while-revalidate=600"
    assert "Authorization" in vary_values(response)


def test_stale_etag_gets_full_response(client, catalog):
    etag = client.get("/institutions").headers["etag"]
    response = client.get("/institutions", params={"only_ranked": "true"}, headers={"If-None-Match": etag})
    assert response.status_code == 200
    assert response.headers["etag"] != etag


def test_invalid_search_params(client, catalog):
    for params in (
        {"min_rank": "abc"},
        {"min_rank": 0},
        {"toefl_score": 121},
        {"ielts_score": 9.5},
        {"min_acceptance_rate": 101},
        {"limit": 0},
        {"limit": 101},
        {"offset": -1},
        {"sort": "newest"},
    ):
        response = client.get("/institutions", params=params)
        assert response.status_code == 400, params
        assert response.json() == {"error": "Invalid search parameters"}


def test_get_institution_detail(client, catalog):
    response = client.get(f"/institutions/{catalog['ucla']}")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["institution_name"] == "University of California-Los Angeles"
    assert data["city"]["state"]["name"] == "California"
    assert data["level"]["description"] == "Four or more years"
    assert data["locale"]["description"] == "City"

    cycle = data["admission_cycles"][0]
    assert cycle["applicants_total"] == 145000
    assert cycle["english_requirement"]["toefl_minimum"] == 100
    assert [d["document_name"] for d in cycle["international_documents"]] == ["Passport", "Financial Statement"]
    assert [m["major_name"] for m in data["popular_majors"]] == ["Biology", "Economics"]
    assert data["enrollment_stats"][0]["percent_nonresident"] == 12


def test_detail_cycles_newest_first(client, catalog):
    data = client.get(f"/institutions/{catalog['nycc']}").json()["data"]
    assert [cycle["year_admissions"] for cycle in data["admission_cycles"]] == [2023, 2022]
    assert data["admission_cycles"][0]["english_requirement"] is None


def test_get_missing_institution(client, catalog):
    response = client.get("/institutions/999999")
    assert response.status_code == 404
    assert response.json() == {"error": "Institution not found"}


def test_get_institution_bad_id(client):
    response = client.get("/institutions/abc")
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid institution ID"


def test_invalid_body_keeps_generic_error(client, catalog, admin_headers):
    response = client.post("/institutions", json={"rank": 5}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


def test_openapi_documents_error_envelope(client):
    schema = client.get("/openapi.json").json()
    assert "ErrorResponse" in schema["components"]["schemas"]
    not_found = schema["paths"]["/institutions/{institution_id}"]["get"]["responses"]["404"]
    assert not_found["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")


def test_unknown_path_uses_error_envelope(client):
    response = client.get("/nowhere")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


# Admin operations

def test_create_requires_login(client, catalog):
    response = client.post("/institutions", json={"institution_name": "New College"})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_create_requires_admin(client, catalog, user_headers):
    response = client.post("/institutions", json={"institution_name": "New College"}, headers=user_headers)
    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden - Admin access required"}


def test_create_institution(client, catalog, admin_headers):
    payload = {"institution_name": "New College", "rank": 300, "city_id": catalog["los_angeles"]}
    response = client.post("/institutions", json=payload, headers=admin_headers)
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Institution created successfully"
    assert body["data"]["institution_name"] == "New College"
    assert body["data"]["city_id"] == catalog["los_angeles"]

    detail = client.get(f"/institutions/{body['data']['institution_id']}").json()["data"]
    assert detail["city"]["name"] == "Los Angeles"
    assert client.get("/institutions").json()["pagination"]["total"] == 8


def test_create_invalid_institution(client, catalog, admin_headers):
    response = client.post("/institutions", json={"institution_name": ""}, headers=admin_headers)
    assert response.status_code == 400

    response = client.post("/institutions", json={"institution_name": "X", "city_id": 9999}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid institution", "details": "Unknown city_id: 9999"}


def test_update_institution(client, catalog, admin_headers):
    response = client.put(f"/institutions/{catalog['cci']}", json={"rank": 400}, headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Institution updated successfully"
    assert body["data"]["rank"] == 400
    assert body["data"]["institution_name"] == "California Community Institute"


def test_update_cannot_clear_name(client, catalog, admin_headers):
    response = client.put(f"/institutions/{catalog['cci']}", json={"institution_name": None}, headers=admin_headers)
    assert response.status_code == 400


def test_update_missing_institution(client, catalog, admin_headers):
    response = client.put("/institutions/999999", json={"rank": 1}, headers=admin_headers)
    assert response.status_code == 404


def test_delete_institution(client, catalog, admin_headers, make_user, db):
    user_id, headers = make_user("saver@example.com")
    client.post("/saved-schools/toggle", json={"institution_id": catalog["usc"]}, headers=headers)

    response = client.delete(f"/institutions/{catalog['usc']}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Institution deleted successfully"}

    assert client.get(f"/institutions/{catalog['usc']}").status_code == 404
    db.expire_all()
    assert db.query(models.SavedSchool).filter_by(user_id=user_id).count() == 0
    assert db.query(models.AdmissionCycle).filter_by(institution_id=catalog["usc"]).count() == 0


def test_delete_missing_institution(client, catalog, admin_headers):
    assert client.delete("/institutions/999999", headers=admin_headers).status_code == 404
