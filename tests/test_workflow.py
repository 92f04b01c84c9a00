"""
Route lifecycle through the HTTP API: create, start, collect, skip, complete.

Run with: pytest tests/test_workflow.py -v
"""
import pytest

from statuses import BinType, UserRole
from workflow import PRE_ROUTE_CHECKLIST


@pytest.fixture
def other_collector_headers(make_user, auth_header):
    return auth_header(make_user("collector2", UserRole.COLLECTOR))


def full_checklist():
    return {"items": [{"itemId": i["itemId"], "checked": True} for i in PRE_ROUTE_CHECKLIST]}


def bin_ids(route):
    return [stop["bin"]["id"] for stop in route["bins"]]


def collect(client, headers, route_id, bin_id, **extra):
    return client.put(
        f"/api/collections/bins/{bin_id}/collect",
        json={"routeId": route_id, **extra},
        headers=headers,
    )


def skip(client, headers, route_id, bin_id, reason="Blocked driveway"):
    return client.put(
        f"/api/collections/bins/{bin_id}/skip",
        json={"routeId": route_id, "reason": reason},
        headers=headers,
    )


class TestCreateRoute:
    def test_new_route_is_scheduled_with_pending_stops(self, make_route, collector):
        route = make_route(n_bins=3)

        assert route["status"] == "scheduled"
        assert route["assignedTo"]["id"] == collector
        assert [s["status"] for s in route["bins"]] == ["pending"] * 3
        assert [s["order"] for s in route["bins"]] == [1, 2, 3]
        assert route["progress"] == 0
        assert route["totalBins"] == 3
        assert route["isComplete"] is False

    def test_missing_fields_are_listed(self, client, admin_headers):
        resp = client.post("/api/routes", json={"routeName": "North"}, headers=admin_headers)

        body = resp.get_json()
        assert resp.status_code == 400
        assert body["success"] is False
        assert "required fields" in body["message"]
        assert "Scheduled date is required" in body["errors"]
        assert "At least one bin is required" in body["errors"]

    def test_duplicate_name(self, client, admin_headers, make_route, make_bin):
        route = make_route()
        resp = client.post("/api/routes", json={
            "routeName": route["routeName"],
            "bins": [{"binId": make_bin(), "order": 1}],
            "scheduledDate": "2026-10-21",
            "scheduledTime": "09:00",
        }, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Route name already exists"

    def test_unknown_bin(self, client, admin_headers, make_bin):
        resp = client.post("/api/routes", json={
            "routeName": "Ghost",
            "bins": [{"binId": make_bin()}, {"binId": 9999}],
            "scheduledDate": "2026-10-21",
            "scheduledTime": "09:00",
        }, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "One or more bins not found"

    def test_assignee_must_be_collector(self, client, admin_headers, admin, make_bin):
        resp = client.post("/api/routes", json={
            "routeName": "Wrong assignee",
            "bins": [{"binId": make_bin()}],
            "scheduledDate": "2026-10-21",
            "scheduledTime": "09:00",
            "assignedTo": admin,
        }, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "User must have collector role"

    def test_collector_cannot_create(self, client, collector_headers, make_bin):
        resp = client.post("/api/routes", json={
            "routeName": "Nope",
            "bins": [{"binId": make_bin()}],
            "scheduledDate": "2026-10-21",
            "scheduledTime": "09:00",
        }, headers=collector_headers)
        assert resp.status_code == 403

    def test_requires_token(self, client):
        resp = client.get("/api/routes")
        assert resp.status_code == 401
        assert resp.get_json() == {"success": False, "message": "Not authorized, no token"}


class TestStartRoute:
    def test_assigned_collector_starts(self, started_route):
        assert started_route["status"] == "in-progress"
        assert started_route["startedAt"] is not None

    def test_other_collector_is_forbidden(self, client, make_route, other_collector_headers):
        route = make_route()
        resp = client.put(
            f"/api/collections/routes/{route['id']}/start", headers=other_collector_headers
        )
        assert resp.status_code == 403
        assert resp.get_json()["message"] == "This route is not assigned to you"

    def test_unassigned_route_cannot_start(self, client, make_route, collector_headers):
        route = make_route(assign=False)
        resp = client.put(
            f"/api/collections/routes/{route['id']}/start", headers=collector_headers
        )
        assert resp.status_code == 403

    def test_second_start_conflicts(self, client, started_route, collector_headers):
        resp = client.put(
            f"/api/collections/routes/{started_route['id']}/start", headers=collector_headers
        )
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Route is not in scheduled status"

    def test_incomplete_checklist_blocks_start(self, client, make_route, collector_headers):
        route = make_route()
        checklist = full_checklist()
        checklist["items"][0]["checked"] = False

        resp = client.put(
            f"/api/collections/routes/{route['id']}/start",
            json={"preRouteChecklist": checklist},
            headers=collector_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["errors"] == [PRE_ROUTE_CHECKLIST[0]["label"]]

        progress = client.get(
            f"/api/collections/routes/{route['id']}/progress", headers=collector_headers
        )
        assert progress.get_json()["data"]["route"]["status"] == "scheduled"

    def test_checklist_is_recorded(self, client, make_route, collector_headers):
        route = make_route()
        resp = client.put(
            f"/api/collections/routes/{route['id']}/start",
            json={"preRouteChecklist": full_checklist()},
            headers=collector_headers,
        )
        recorded = resp.get_json()["data"]["route"]["preRouteChecklist"]
        assert resp.status_code == 200
        assert recorded["completed"] is True
        assert len(recorded["items"]) == len(PRE_ROUTE_CHECKLIST)

    def test_checklist_endpoint(self, client, collector_headers):
        items = client.get("/api/collections/checklist", headers=collector_headers) \
            .get_json()["data"]["items"]
        assert [i["itemId"] for i in items] == [i["itemId"] for i in PRE_ROUTE_CHECKLIST]
        assert not any(i["checked"] for i in items)


class TestCollectAndSkip:
    def test_collect_before_start(self, client, make_route, collector_headers):
        route = make_route()
        resp = collect(client, collector_headers, route["id"], bin_ids(route)[0])
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Route must be in-progress to collect bins"

    def test_collect_updates_stop_bin_and_progress(self, client, started_route, collector_headers):
        first = bin_ids(started_route)[0]
        resp = collect(client, collector_headers, started_route["id"], first,
                       notes="Lid broken", photoUrl="https://img.example.com/1.jpg")

        data = resp.get_json()["data"]
        assert resp.status_code == 200
        assert data["stop"]["status"] == "collected"
        assert data["stop"]["collectedAt"] is not None
        assert data["stop"]["notes"] == "Lid broken"
        assert data["stop"]["fillLevelAtCollection"] == 60
        assert data["bin"]["fillLevel"] == 0
        assert data["bin"]["lastCollection"] is not None
        assert data["route"]["progress"] == 33
        assert data["route"]["collectedBins"] == 1

    def test_collect_twice_conflicts(self, client, started_route, collector_headers):
        first = bin_ids(started_route)[0]
        collect(client, collector_headers, started_route["id"], first)

        resp = collect(client, collector_headers, started_route["id"], first)
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Bin already collected"

    def test_skip_requires_reason(self, client, started_route, collector_headers):
        resp = skip(client, collector_headers, started_route["id"],
                    bin_ids(started_route)[0], reason="   ")
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Reason is required for skipping a bin"

    def test_skip_keeps_reason_and_blocks_collect(self, client, started_route, collector_headers):
        target = bin_ids(started_route)[1]
        resp = skip(client, collector_headers, started_route["id"], target, reason="Gate locked")
        stop = resp.get_json()["data"]["stop"]
        assert stop["status"] == "skipped"
        assert stop["reason"] == "Gate locked"

        again = collect(client, collector_headers, started_route["id"], target)
        assert again.status_code == 400
        assert again.get_json()["message"] == "Bin already skipped"

    def test_bin_outside_route(self, client, started_route, collector_headers, make_bin):
        resp = collect(client, collector_headers, started_route["id"], make_bin())
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Bin not found in this route"

    def test_missing_route_id(self, client, started_route, collector_headers):
        resp = client.put(
            f"/api/collections/bins/{bin_ids(started_route)[0]}/collect",
            json={}, headers=collector_headers,
        )
        assert resp.status_code == 400

    def test_other_collector_cannot_collect(self, client, started_route, other_collector_headers):
        resp = collect(client, other_collector_headers, started_route["id"],
                       bin_ids(started_route)[0])
        assert resp.status_code == 403

    def test_resident_owner_earns_points(self, client, make_user, make_bin, make_route,
                                         collector_headers, auth_header):
        owner = make_user("resident1", UserRole.RESIDENT)
        recyclable = make_bin(fill_level=70, owner_id=owner, bin_type=BinType.RECYCLABLE)
        route = make_route(bin_ids=[recyclable])
        client.put(f"/api/collections/routes/{route['id']}/start", headers=collector_headers)

        resp = collect(client, collector_headers, route["id"], recyclable, actualWeight=4)
        assert resp.get_json()["data"]["pointsAwarded"] == 60

        balance = client.get("/api/users/me/credit-points", headers=auth_header(owner))
        assert balance.get_json()["data"]["creditPoints"] == 60


class TestCompleteRoute:
    def test_pending_bins_block_completion(self, client, started_route, collector_headers):
        collect(client, collector_headers, started_route["id"], bin_ids(started_route)[0])

        resp = client.put(
            f"/api/collections/routes/{started_route['id']}/complete", headers=collector_headers
        )
        body = resp.get_json()
        assert resp.status_code == 400
        assert body["message"] == "All bins must be collected or skipped before completing the route"
        assert body["data"]["pendingBins"] == 2
        assert body["data"]["progress"] == 33

    def test_complete_reports_analytics(self, client, started_route, collector_headers):
        first, second, third = bin_ids(started_route)
        collect(client, collector_headers, started_route["id"], first, actualWeight=12.4)
        collect(client, collector_headers, started_route["id"], second)
        skip(client, collector_headers, started_route["id"], third)

        resp = client.put(
            f"/api/collections/routes/{started_route['id']}/complete", headers=collector_headers
        )
        data = resp.get_json()["data"]
        assert resp.status_code == 200
        assert data["route"]["status"] == "completed"
        assert data["route"]["completedAt"] is not None
        assert data["route"]["isComplete"] is True
        assert data["route"]["progress"] == 100
        assert data["analytics"]["binsCollected"] == 2
        assert data["analytics"]["efficiency"] == 67
        # 12.4 recorded + 60% of a 100 kg bin
        assert data["analytics"]["wasteCollected"] == 72
        assert data["analytics"]["recyclableWaste"] == 0

    def test_all_skipped_route_completes(self, client, started_route, collector_headers):
        for bin_id in bin_ids(started_route):
            skip(client, collector_headers, started_route["id"], bin_id)

        resp = client.put(
            f"/api/collections/routes/{started_route['id']}/complete", headers=collector_headers
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["analytics"]["efficiency"] == 0

    def test_complete_scheduled_route(self, client, make_route, collector_headers):
        route = make_route()
        resp = client.put(
            f"/api/collections/routes/{route['id']}/complete", headers=collector_headers
        )
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Route must be in-progress to complete"


class TestRouteAdministration:
    def test_cancel_scheduled(self, client, make_route, admin_headers):
        route = make_route()
        resp = client.put(f"/api/routes/{route['id']}/cancel",
                          json={"reason": "Truck down"}, headers=admin_headers)
        data = resp.get_json()["data"]["route"]
        assert data["status"] == "cancelled"
        assert data["notes"] == "Truck down"

    def test_cancelled_route_stays_cancelled(self, client, make_route, admin_headers,
                                             collector_headers):
        route = make_route()
        client.put(f"/api/routes/{route['id']}/cancel", json={}, headers=admin_headers)

        again = client.put(f"/api/routes/{route['id']}/cancel", json={}, headers=admin_headers)
        assert again.status_code == 400
        start = client.put(f"/api/collections/routes/{route['id']}/start",
                           headers=collector_headers)
        assert start.status_code == 400

    def test_in_progress_route_cannot_be_deleted_or_edited(self, client, started_route,
                                                           admin_headers):
        route_id = started_route["id"]
        assert client.delete(f"/api/routes/{route_id}", headers=admin_headers).status_code == 400
        resp = client.put(f"/api/routes/{route_id}", json={"notes": "x"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_delete_scheduled_route(self, client, make_route, admin_headers):
        route = make_route()
        assert client.delete(f"/api/routes/{route['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/routes/{route['id']}", headers=admin_headers).status_code == 404

    def test_update_replaces_stops(self, client, make_route, make_bin, admin_headers):
        route = make_route()
        fresh = make_bin()
        resp = client.put(f"/api/routes/{route['id']}", json={
            "bins": [{"binId": fresh, "order": 1}],
            "scheduledTime": "10:30",
        }, headers=admin_headers)
        data = resp.get_json()["data"]["route"]
        assert bin_ids(data) == [fresh]
        assert data["scheduledTime"] == "10:30"

    @pytest.mark.filterwarnings("error::sqlalchemy.exc.SAWarning")
    def test_reordering_kept_bins_flushes_cleanly(self, client, make_route, admin_headers):
        route = make_route(n_bins=2)
        first, second = bin_ids(route)
        resp = client.put(f"/api/routes/{route['id']}", json={
            "bins": [{"binId": second, "order": 1}, {"binId": first, "order": 2}],
        }, headers=admin_headers)
        assert resp.status_code == 200
        assert bin_ids(resp.get_json()["data"]["route"]) == [second, first]

    def test_update_caps_route_name(self, client, make_route, admin_headers):
        route = make_route()
        resp = client.put(f"/api/routes/{route['id']}", json={"routeName": "R" * 101},
                          headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Route name cannot exceed 100 characters"

        renamed = client.put(f"/api/routes/{route['id']}", json={"routeName": " North loop "},
                             headers=admin_headers)
        assert renamed.get_json()["data"]["route"]["routeName"] == "North loop"

    def test_assign_and_list_for_collector(self, client, make_route, make_user, auth_header,
                                           admin_headers):
        route = make_route(assign=False)
        other = make_user("collector2", UserRole.COLLECTOR)

        resp = client.put(f"/api/routes/{route['id']}/assign",
                          json={"collectorId": other}, headers=admin_headers)
        assert resp.get_json()["data"]["route"]["assignedTo"]["id"] == other

        mine = client.get("/api/routes/my-routes", headers=auth_header(other))
        assert [r["id"] for r in mine.get_json()["data"]["routes"]] == [route["id"]]

    def test_collector_cannot_view_someone_elses_routes(self, client, collector,
                                                        other_collector_headers):
        resp = client.get(f"/api/routes/collector/{collector}", headers=other_collector_headers)
        assert resp.status_code == 403

    def test_progress_visible_to_admin_not_other_collector(self, client, started_route,
                                                           admin_headers, other_collector_headers):
        url = f"/api/collections/routes/{started_route['id']}/progress"
        assert client.get(url, headers=admin_headers).status_code == 200
        assert client.get(url, headers=other_collector_headers).status_code == 403

    def test_list_filters_and_stats(self, client, make_route, started_route, admin_headers):
        make_route(assign=False)

        listed = client.get("/api/routes?status=in-progress", headers=admin_headers)
        routes = listed.get_json()["data"]["routes"]
        assert [r["id"] for r in routes] == [started_route["id"]]

        stats = client.get("/api/routes/stats", headers=admin_headers).get_json()["data"]["stats"]
        assert stats["totalRoutes"] == 2
        assert stats["inProgressRoutes"] == 1
        assert stats["unassignedRoutes"] == 1

    def test_bad_status_filter(self, client, admin_headers):
        resp = client.get("/api/routes?status=paused", headers=admin_headers)
        assert resp.status_code == 400


class TestEdgeCases:
    @pytest.mark.parametrize("body", [
        {"reason": ""},
        {"reason": "   "},
        {"reason": None},
        {},
    ])
    def test_skip_reason_rejected(self, client, started_route, collector_headers, body):
        resp = client.put(
            f"/api/collections/bins/{bin_ids(started_route)[0]}/skip",
            json={"routeId": started_route["id"], **body},
            headers=collector_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Reason is required for skipping a bin"

    def test_long_skip_reason_kept_verbatim(self, client, started_route, collector_headers):
        reason = "Access road flooded. " * 30
        resp = skip(client, collector_headers, started_route["id"],
                    bin_ids(started_route)[0], reason=reason)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["stop"]["reason"] == reason

    def test_fetch_returns_bins_in_created_order(self, client, admin_headers, make_bin,
                                                 make_route):
        ids = [make_bin() for _ in range(4)]
        ids.reverse()
        route = make_route(bin_ids=ids)

        fetched = client.get(f"/api/routes/{route['id']}", headers=admin_headers) \
            .get_json()["data"]["route"]
        assert bin_ids(fetched) == ids

    @pytest.mark.parametrize("overrides", [{"routeName": "  "}, {"bins": []}])
    def test_empty_name_or_bins_alone_is_enough(self, client, admin_headers, make_bin,
                                                overrides):
        payload = {
            "routeName": "Valid name",
            "bins": [{"binId": make_bin(), "order": 1}],
            "scheduledDate": "2026-10-21",
            "scheduledTime": "09:00",
        }
        payload.update(overrides)
        resp = client.post("/api/routes", json=payload, headers=admin_headers)
        assert resp.status_code == 400
        assert len(resp.get_json()["errors"]) == 1

    def test_ten_bins_seven_collected_three_skipped(self, client, make_route,
                                                     collector_headers):
        route = make_route(n_bins=10)
        client.put(f"/api/collections/routes/{route['id']}/start", headers=collector_headers)
        ids = bin_ids(route)
        for bin_id in ids[:7]:
            collect(client, collector_headers, route["id"], bin_id)
        for bin_id in ids[7:]:
            skip(client, collector_headers, route["id"], bin_id)

        progress = client.get(f"/api/collections/routes/{route['id']}/progress",
                              headers=collector_headers).get_json()["data"]
        assert progress["pendingBins"] == 0
        assert progress["collectedBins"] == 7
        assert progress["skippedBins"] == 3
        assert progress["progress"] == 100
        assert progress["isComplete"] is True
