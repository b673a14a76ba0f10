"""
HR Mobile gateway.

aiohttp backend-for-frontend that exposes the ERP services as JSON routes
for the mobile UI.

Every route except health, password login and Microsoft sign-in needs
`Authorization: Bearer <credential>`, where the credential is the `sid`
returned by `/api/auth/login` or a Microsoft ID token. Employee routes
only serve the caller's own employee record.
"""

import asyncio
import json
import logging
import sys
from datetime import date
from typing import Any, Optional

from aiohttp import web
from aiohttp.web import Request, Response
from pydantic import BaseModel

from hr_mobile.auth import CallerSession, MicrosoftLogin, PasswordAuth, SessionRegistry
from hr_mobile.config import Settings, get_settings
from hr_mobile.frappe import (
    CompanyPayload,
    ExpenseClaimInput,
    FrappeClient,
    FrappeError,
    LeaveApplicationInput,
)
from hr_mobile.location import Coordinates, ReverseGeocoder
from hr_mobile.services import (
    AttendanceService,
    ExpenseService,
    LeaveService,
    OnboardingService,
    ProfileService,
    UserService,
    pair_sessions,
)
from hr_mobile.storage import KeyValueStore, SecureStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

PUBLIC_PATHS = {"/", "/health", "/api/auth/login", "/api/auth/microsoft"}


def _json(data: Any, status: int = 200) -> Response:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    elif isinstance(data, list):
        data = [d.model_dump(mode="json") if isinstance(d, BaseModel) else d for d in data]
    return web.json_response(data, status=status)


def _http_error(error_class: type[web.HTTPException], message: str, **kwargs) -> web.HTTPException:
    return error_class(
        text=json.dumps({"error": message}), content_type="application/json", **kwargs
    )


def _bearer_token(request: Request) -> Optional[str]:
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    return SessionRegistry.token_for(credentials)


async def _body(request: Request) -> dict[str, Any]:
    if not request.can_read_body:
        return {}
    try:
        data = await request.json()
    except ValueError as e:
        raise ValueError("Request body must be JSON") from e
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


@web.middleware
async def error_middleware(request: Request, handler) -> Response:
    """Map service errors to HTTP responses."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except ValueError as e:
        return web.json_response({"error": str(e)}, status=400)
    except FrappeError as e:
        logger.error(f"ERP error on {request.path}: {e}")
        return web.json_response({"error": e.message}, status=502)
    except Exception as e:
        logger.error(f"Error handling {request.path}: {e}", exc_info=True)
        return web.json_response(
            {"error": "Something went wrong. Please try again."}, status=500
        )


class Application:
    """Main application class."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[FrappeClient] = None,
        secure_store: Optional[SecureStore] = None,
        geocoder: Optional[ReverseGeocoder] = None,
    ):
        """Initialize the application."""
        self.settings = settings or get_settings()

        # Set logging level
        logging.getLogger().setLevel(self.settings.log_level)

        self.client = client or FrappeClient(self.settings)
        self.geocoder = geocoder or ReverseGeocoder(self.settings)

        self.profiles = ProfileService(self.client)
        self.users = UserService(self.client)
        self.leave = LeaveService(self.client)
        self.expenses = ExpenseService(self.client, self.profiles, self.settings)
        self.attendance = AttendanceService(self.client, self.settings)
        self.onboarding = OnboardingService(self.client)
        secure_store = secure_store or SecureStore(
            KeyValueStore(self.settings.storage_path),
            service=self.settings.keychain_service,
        )
        self.password_auth = PasswordAuth(self.client, secure_store, self.users)
        self.microsoft = MicrosoftLogin(self.settings)
        self.sessions = SessionRegistry()

        logger.info("Application initialized successfully")

    # =========================================================================
    # Caller authentication
    # =========================================================================

    @web.middleware
    async def auth_middleware(self, request: Request, handler) -> Response:
        """Require a bearer credential on every non-public route."""
        if request.path in PUBLIC_PATHS:
            return await handler(request)

        token = _bearer_token(request)
        caller = await self._authenticate(token) if token else None
        if caller is None:
            raise _http_error(
                web.HTTPUnauthorized,
                "Authentication required",
                headers={"WWW-Authenticate": "Bearer"},
            )

        employee_id = request.match_info.get("employee_id")
        if employee_id is not None:
            self._require_employee(caller, employee_id)

        request["caller"] = caller
        request["token"] = token
        return await handler(request)

    async def _authenticate(self, token: str) -> Optional[CallerSession]:
        """Resolve a password session `sid` or a Microsoft ID token to a caller."""
        session = self.sessions.get(token)
        if session is not None:
            return session

        if token.count(".") != 2:
            return None
        identity = await asyncio.to_thread(self.microsoft.validate_id_token, token)
        if identity is None:
            return None

        employee_id = await self.users.get_employee_id_by_email(identity.email)
        return CallerSession(user_id=identity.email, employee_id=employee_id, source="microsoft")

    @staticmethod
    def _require_employee(caller: CallerSession, employee_id: Optional[str]):
        if not caller.employee_id or caller.employee_id != employee_id:
            logger.warning(f"{caller.user_id} denied access to employee {employee_id}")
            raise _http_error(web.HTTPForbidden, "Not allowed for this employee")

    # =========================================================================
    # Auth
    # =========================================================================

    async def login_handler(self, request: Request) -> Response:
        """Log in with ERP credentials; the returned `token` is the caller's bearer credential."""
        body = await _body(request)
        usr = str(body.get("usr", "") or "").strip()
        result = await self.password_auth.login_with_password(usr, body.get("pwd", ""))

        data = result.model_dump(mode="json")
        token = self.sessions.token_for(result.cookie) if result.ok else None
        if token:
            self.sessions.add(
                token,
                CallerSession(
                    user_id=result.user_id or usr,
                    employee_id=result.employee_id,
                    cookie=result.cookie,
                ),
            )
        data["token"] = token
        return _json(data, status=200 if result.ok else 401)

    async def logout_handler(self, request: Request) -> Response:
        """End the caller's own session."""
        caller: CallerSession = request["caller"]
        if not caller.cookie:
            return _json({"ok": True})

        self.sessions.remove(request["token"])
        ok = await self.password_auth.logout_session(cookie=caller.cookie, user=caller.user_id)
        return _json({"ok": ok})

    async def microsoft_handler(self, request: Request) -> Response:
        """Exchange a Microsoft ID token for the matching employee."""
        body = await _body(request)
        token = body.get("id_token")
        if not token:
            raise ValueError("id_token is required")

        identity = self.microsoft.validate_id_token(token)
        if identity is None:
            return _json({"error": "Invalid Microsoft token"}, status=401)

        employee_id = await self.users.get_employee_id_by_email(identity.email)
        return _json(
            {
                "email": identity.email,
                "display_name": identity.display_name,
                "tenant_id": identity.tenant_id,
                "employee_id": employee_id,
            }
        )

    # =========================================================================
    # Profile
    # =========================================================================

    async def profile_handler(self, request: Request) -> Response:
        employee_id = request.match_info["employee_id"]
        profile = await self.profiles.fetch_employee_profile(employee_id)
        if profile is None:
            return _json({"error": "Profile not found"}, status=404)
        return _json(profile)

    # =========================================================================
    # Leave
    # =========================================================================

    async def leave_balances_handler(self, request: Request) -> Response:
        employee_id = request.match_info["employee_id"]
        on = request.query.get("on")
        balances = await self.leave.compute_leave_balances(
            employee_id, date.fromisoformat(on) if on else None
        )
        return _json(balances)

    async def leave_applications_handler(self, request: Request) -> Response:
        employee_id = request.match_info["employee_id"]
        applications = await self.leave.fetch_leave_applications(
            employee_id, status=request.query.get("status")
        )
        return _json(applications)

    async def apply_leave_handler(self, request: Request) -> Response:
        application = LeaveApplicationInput.model_validate(await _body(request))
        self._require_employee(request["caller"], application.employee)
        created = await self.leave.submit_leave_application(application)
        return _json(created, status=201)

    # =========================================================================
    # Expense
    # =========================================================================

    async def expense_categories_handler(self, request: Request) -> Response:
        refresh = request.query.get("refresh", "").lower() in ("1", "true", "yes")
        return _json(await self.expenses.fetch_expense_categories(force_refresh=refresh))

    async def expense_history_handler(self, request: Request) -> Response:
        employee_id = request.match_info["employee_id"]
        return _json(await self.expenses.fetch_expense_history(employee_id))

    async def submit_expense_handler(self, request: Request) -> Response:
        claim = ExpenseClaimInput.model_validate(await _body(request))
        self._require_employee(request["caller"], claim.employee_id)
        result = await self.expenses.submit_expense_claim(claim)
        return _json(result, status=201 if result.success else 400)

    # =========================================================================
    # Attendance
    # =========================================================================

    async def attendance_handler(self, request: Request) -> Response:
        employee_id = request.match_info["employee_id"]
        checkins = await self.attendance.list_checkins(employee_id)
        latest = checkins[0] if checkins else None
        return _json(
            {
                "is_clocked_in": latest is not None and latest.log_type == "IN",
                "last_log": latest.model_dump(mode="json") if latest else None,
                "sessions": [s.model_dump(mode="json") for s in pair_sessions(checkins)],
            }
        )

    async def toggle_attendance_handler(self, request: Request) -> Response:
        employee_id = request.match_info["employee_id"]
        body = await _body(request)

        coords = None
        if body.get("latitude") is not None and body.get("longitude") is not None:
            coords = Coordinates(float(body["latitude"]), float(body["longitude"]))
        location = await self.geocoder.location_stamp(coords)

        action, checkin = await self.attendance.toggle_clock(employee_id, location=location)
        return _json({"action": action.value, "checkin": checkin}, status=201)

    # =========================================================================
    # Onboarding
    # =========================================================================

    async def get_company_handler(self, request: Request) -> Response:
        employee_id = request.match_info["employee_id"]
        company_id = await self.onboarding.get_employee_company(employee_id)
        company = await self.onboarding.get_company_by_name(company_id) if company_id else None
        if company is None:
            return _json({"error": "No company linked"}, status=404)
        return _json(company)

    async def save_company_handler(self, request: Request) -> Response:
        employee_id = request.match_info["employee_id"]
        payload = CompanyPayload.model_validate(await _body(request))
        return _json(await self.onboarding.save_company(employee_id, payload))

    async def health_handler(self, request: Request) -> Response:
        """Health check endpoint."""
        return _json(
            {
                "status": "healthy",
                "service": "hr-mobile-gateway",
                "erp_configured": self.settings.is_erp_configured,
            }
        )

    async def _on_cleanup(self, app: web.Application):
        await self.client.close()
        await self.geocoder.close()

    def create_app(self) -> web.Application:
        """Create the aiohttp web application."""
        app = web.Application(middlewares=[error_middleware, self.auth_middleware])

        # Add routes
        app.router.add_get("/health", self.health_handler)
        app.router.add_get("/", self.health_handler)

        app.router.add_post("/api/auth/login", self.login_handler)
        app.router.add_post("/api/auth/logout", self.logout_handler)
        app.router.add_post("/api/auth/microsoft", self.microsoft_handler)

        app.router.add_get("/api/employees/{employee_id}/profile", self.profile_handler)

        app.router.add_get(
            "/api/employees/{employee_id}/leave/balances", self.leave_balances_handler
        )
        app.router.add_get(
            "/api/employees/{employee_id}/leave/applications", self.leave_applications_handler
        )
        app.router.add_post("/api/leave/applications", self.apply_leave_handler)

        app.router.add_get("/api/expense/categories", self.expense_categories_handler)
        app.router.add_get("/api/employees/{employee_id}/expenses", self.expense_history_handler)
        app.router.add_post("/api/expense/claims", self.submit_expense_handler)

        app.router.add_get("/api/employees/{employee_id}/attendance", self.attendance_handler)
        app.router.add_post(
            "/api/employees/{employee_id}/attendance/toggle", self.toggle_attendance_handler
        )

        app.router.add_get("/api/employees/{employee_id}/company", self.get_company_handler)
        app.router.add_post("/api/employees/{employee_id}/company", self.save_company_handler)

        app.on_cleanup.append(self._on_cleanup)
        return app


def main():
    """Main entry point."""
    try:
        settings = get_settings()
        application = Application(settings)
        app = application.create_app()

        logger.info(f"Starting HR Mobile gateway on {settings.host}:{settings.port}")

        web.run_app(
            app,
            host=settings.host,
            port=settings.port,
        )

    except Exception as e:
        logger.error(f"Failed to start application: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
