"""
One method per REST endpoint.

Each method returns the server's ``data`` object unchanged and lets errors
propagate to the caller, who decides how to present them.
"""


class _Service:
    def __init__(self, api):
        self.api = api


class AuthService(_Service):
    def _start_session(self, data):
        self.api.session.set(data["token"], data["user"])
        return data

    def login(self, username, password):
        data = self.api.post("/auth/login", {"username": username, "password": password})
        return self._start_session(data)

    def admin_login(self, username, password):
        data = self.api.post("/auth/admin-login", {"username": username, "password": password})
        return self._start_session(data)

    def register(self, **fields):
        return self._start_session(self.api.post("/auth/register", fields))

    def logout(self):
        self.api.session.clear()

    def get_profile(self):
        return self.api.get("/auth/profile")

    def update_profile(self, **fields):
        data = self.api.put("/auth/profile", fields)
        self.api.session.set(self.api.session.token, data["user"])
        return data

    def change_password(self, old_password, new_password, confirm_password=None):
        return self.api.post("/auth/change-password", {
            "oldPassword": old_password,
            "newPassword": new_password,
            "confirmPassword": new_password if confirm_password is None else confirm_password,
        })

    def update_account_settings(self, **fields):
        data = self.api.put("/auth/account-settings", fields)
        self.api.session.set(self.api.session.token, data["user"])
        return data

    def deactivate_account(self):
        data = self.api.put("/auth/deactivate")
        self.api.session.clear()
        return data


class RouteService(_Service):
    def create_route(self, route_name, bins, scheduled_date, scheduled_time,
                     assigned_to=None, notes=None):
        payload = {
            "routeName": route_name,
            "bins": bins,
            "scheduledDate": scheduled_date,
            "scheduledTime": scheduled_time,
        }
        if assigned_to is not None:
            payload["assignedTo"] = assigned_to
        if notes is not None:
            payload["notes"] = notes
        return self.api.post("/routes", payload)

    def get_all_routes(self, status=None, assigned_to=None, search=None, page=None, limit=None):
        return self.api.get("/routes", params={
            "status": status,
            "assignedTo": assigned_to,
            "search": search,
            "page": page,
            "limit": limit,
        })

    def get_route(self, route_id):
        return self.api.get(f"/routes/{route_id}")

    def update_route(self, route_id, **fields):
        return self.api.put(f"/routes/{route_id}", fields)

    def delete_route(self, route_id):
        return self.api.delete(f"/routes/{route_id}")

    def assign_collector(self, route_id, collector_id):
        return self.api.put(f"/routes/{route_id}/assign", {"collectorId": collector_id})

    def cancel_route(self, route_id, reason=None):
        return self.api.put(f"/routes/{route_id}/cancel", {"reason": reason})

    def get_route_stats(self):
        return self.api.get("/routes/stats")

    def get_collector_routes(self, collector_id, status=None):
        return self.api.get(f"/routes/collector/{collector_id}", params={"status": status})


class CollectionService(_Service):
    def start_route(self, route_id, checklist=None):
        body = {"preRouteChecklist": checklist} if checklist is not None else {}
        return self.api.put(f"/collections/routes/{route_id}/start", body)

    def complete_route(self, route_id):
        return self.api.put(f"/collections/routes/{route_id}/complete")

    def collect_bin(self, bin_id, route_id, notes="", actual_weight=None):
        body = {"routeId": route_id, "notes": notes}
        if actual_weight is not None:
            body["actualWeight"] = actual_weight
        return self.api.put(f"/collections/bins/{bin_id}/collect", body)

    def skip_bin(self, bin_id, route_id, reason):
        return self.api.put(
            f"/collections/bins/{bin_id}/skip", {"routeId": route_id, "reason": reason}
        )

    def get_route_progress(self, route_id):
        return self.api.get(f"/collections/routes/{route_id}/progress")

    def get_checklist(self):
        return self.api.get("/collections/checklist")


class BinService(_Service):
    def get_all_bins(self, zone=None, bin_type=None, status=None, search=None):
        return self.api.get("/bins", params={
            "zone": zone,
            "binType": bin_type,
            "status": status,
            "search": search,
        })

    def get_bin(self, bin_id):
        return self.api.get(f"/bins/{bin_id}")

    def create_bin(self, **fields):
        return self.api.post("/bins", fields)

    def update_bin(self, bin_id, **fields):
        return self.api.put(f"/bins/{bin_id}", fields)

    def update_fill_level(self, bin_id, fill_level, weight=None):
        body = {"fillLevel": fill_level}
        if weight is not None:
            body["weight"] = weight
        return self.api.put(f"/bins/{bin_id}/fill-level", body)

    def delete_bin(self, bin_id):
        return self.api.delete(f"/bins/{bin_id}")

    def get_bin_stats(self):
        return self.api.get("/bins/stats")

    def get_resident_bins(self):
        return self.api.get("/bins/resident/my-bins")

    def get_resident_bin_schedule(self, bin_id):
        return self.api.get(f"/bins/resident/{bin_id}/schedule")

    def get_collection_history(self):
        return self.api.get("/bins/resident/collection-history")


class UserService(_Service):
    def get_all_users(self, role=None, status=None, search=None, page=None, limit=None):
        return self.api.get("/users", params={
            "role": role,
            "status": status,
            "search": search,
            "page": page,
            "limit": limit,
        })

    def get_user(self, user_id):
        return self.api.get(f"/users/{user_id}")

    def update_user(self, user_id, **fields):
        return self.api.put(f"/users/{user_id}", fields)

    def update_user_role(self, user_id, role):
        return self.api.put(f"/users/{user_id}/role", {"role": role})

    def update_user_status(self, user_id, status):
        return self.api.put(f"/users/{user_id}/status", {"status": status})

    def delete_user(self, user_id):
        return self.api.delete(f"/users/{user_id}")

    def get_user_stats(self):
        return self.api.get("/users/stats")

    def get_credit_points(self):
        return self.api.get("/users/me/credit-points")

    def redeem_points(self, points):
        return self.api.post("/users/me/credit-points/redeem", {"points": points})


class AnalyticsService(_Service):
    def get_analytics(self, period=None):
        return self.api.get("/analytics", params={"period": period})

    def get_kpis(self):
        return self.api.get("/analytics/kpis")

    def get_collection_trends(self, period="weekly"):
        return self.api.get("/analytics/trends", params={"period": period})

    def get_waste_distribution(self):
        return self.api.get("/analytics/waste-distribution")

    def get_route_performance(self):
        return self.api.get("/analytics/route-performance")
