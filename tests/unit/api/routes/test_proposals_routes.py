import pytest


@pytest.fixture
def project(make_project):
    return make_project()


@pytest.fixture
def submit(api, as_member, proposal_payload):
    def _submit(project, member, **overrides):
        body = dict(proposal_payload(**overrides), projectId=project.id)
        return api.post("/proposals", json=body, headers=as_member(member))

    return _submit


def test_submit_proposal(submit, project, freelancer):
    resp = submit(
        project,
        freelancer,
        milestones=[
            {"description": "Wireframes", "amount": 150, "dueDate": "2031-03-01"},
            {"description": "Build", "amount": 300},
        ],
    )
    assert resp.status_code == 201, resp.text
    proposal = resp.json()["proposal"]
    assert proposal["status"] == "pending"
    assert proposal["projectId"] == project.id
    assert proposal["freelancer"]["name"] == "Fred Freelancer"
    assert [m["position"] for m in proposal["milestones"]] == [0, 1]
    assert proposal["milestones"][0]["dueDate"] == "2031-03-01"


def test_submit_rules(submit, project, freelancer, client_member):
    assert submit(project, client_member).status_code == 403
    assert submit(project, freelancer, bid_amount=0).status_code == 400
    resp = submit(project, freelancer, milestones=[{"description": "All of it", "amount": 10_000}])
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "milestones"

    assert submit(project, freelancer).status_code == 201
    dup = submit(project, freelancer)
    assert dup.status_code == 409
    assert dup.json()["current"]["status"] == "pending"


def test_submit_to_unknown_project(api, as_member, freelancer, proposal_payload):
    body = dict(proposal_payload(), projectId=4040)
    assert api.post("/proposals", json=body, headers=as_member(freelancer)).status_code == 404


def test_get_and_list(api, as_member, submit, project, client_member, freelancer, other_freelancer):
    mine = submit(project, freelancer).json()["proposal"]
    theirs = submit(project, other_freelancer, bid_amount=400).json()["proposal"]

    resp = api.get(f"/proposals/{mine['id']}", headers=as_member(other_freelancer))
    assert resp.status_code == 403
    resp = api.get(f"/proposals/{mine['id']}", headers=as_member(client_member))
    assert resp.json()["proposal"]["bidAmount"] == 450

    listed = api.get("/proposals", params={"project": project.id}, headers=as_member(client_member)).json()
    assert {p["id"] for p in listed["proposals"]} == {mine["id"], theirs["id"]}
    listed = api.get("/proposals", params={"project": project.id}, headers=as_member(freelancer)).json()
    assert [p["id"] for p in listed["proposals"]] == [mine["id"]]

    resp = api.get("/proposals", params={"status": "bogus"}, headers=as_member(freelancer))
    assert resp.status_code == 400


def test_update_proposal(api, as_member, submit, project, freelancer):
    proposal = submit(project, freelancer).json()["proposal"]
    resp = api.put(
        f"/proposals/{proposal['id']}",
        json={"bidAmount": 500, "timeline": "5 weeks"},
        headers=as_member(freelancer),
    )
    assert resp.status_code == 200
    body = resp.json()["proposal"]
    assert (body["bidAmount"], body["timeline"], body["coverLetter"]) == (500, "5 weeks", proposal["coverLetter"])


def test_accept_reject_withdraw(api, as_member, submit, project, client_member, freelancer, other_freelancer, make_member):
    a = submit(project, freelancer).json()["proposal"]
    b = submit(project, other_freelancer, bid_amount=400).json()["proposal"]
    third = make_member(freelancer.role)
    c = submit(project, third, bid_amount=420).json()["proposal"]
    owner = as_member(client_member)

    resp = api.patch(f"/proposals/{c['id']}/status", json={"status": "rejected", "note": "No thanks"}, headers=owner)
    assert resp.json()["proposal"]["clientResponse"] == "No thanks"

    resp = api.patch(f"/proposals/{a['id']}/status", json={"status": "accepted"}, headers=owner)
    assert resp.status_code == 200
    body = resp.json()
    assert body["proposal"]["status"] == "accepted"
    assert body["project"]["status"] == "in-progress"
    assert body["project"]["assignedFreelancer"]["id"] == freelancer.id

    resp = api.get(f"/proposals/{b['id']}", headers=as_member(other_freelancer))
    assert resp.json()["proposal"]["status"] == "rejected"

    resp = api.patch(f"/proposals/{b['id']}/status", json={"status": "withdrawn"}, headers=as_member(other_freelancer))
    assert resp.status_code == 409
    assert resp.json()["actual"] == "rejected"


def test_status_change_validation(api, as_member, submit, project, client_member, freelancer):
    proposal = submit(project, freelancer).json()["proposal"]
    owner = as_member(client_member)
    url = f"/proposals/{proposal['id']}/status"

    assert api.patch(url, json={"status": "pending"}, headers=owner).status_code == 400
    assert api.patch(url, json={"status": "rejected", "note": "x" * 1001}, headers=owner).status_code == 400
    assert api.patch(url, json={"status": "accepted"}, headers=as_member(freelancer)).status_code == 403
    assert api.patch("/proposals/abc/status", json={"status": "accepted"}, headers=owner).status_code == 404
