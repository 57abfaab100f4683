"""Shared fixtures: a fake Appium server and a stub REST backend, both real HTTP."""
import base64
import threading
from dataclasses import dataclass, field

import pytest
from flask import Flask, jsonify, request
from werkzeug.serving import make_server

from mobile_automation.appium_http_client import W3C_ELEMENT_KEY
from mobile_automation.config import TestConfig, reset_config, set_config
from mobile_automation.driver_manager import quit_driver


class _ServerThread:
    def __init__(self, app):
        self._server = make_server("127.0.0.1", 0, app, threaded=True)
        self.url = f"http://127.0.0.1:{self._server.server_port}"
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    def __enter__(self):
        self._thread.start()
        return self

    def __exit__(self, *exc):
        self._server.shutdown()
        self._thread.join(timeout=5)


@dataclass
class FakeElement:
    element_id: str
    text: str = ""
    displayed: bool = True
    enabled: bool = True
    attributes: dict = field(default_factory=dict)


@dataclass
class FakeAppiumState:
    url: str = ""
    session_id: str = "session-1"
    active: bool = False
    capabilities: dict = field(default_factory=dict)
    page_source: str = "<hierarchy/>"
    elements: dict = field(default_factory=dict)
    by_id: dict = field(default_factory=dict)
    clicks: list = field(default_factory=list)
    typed: list = field(default_factory=list)
    cleared: list = field(default_factory=list)
    scripts: list = field(default_factory=list)
    actions: list = field(default_factory=list)
    timeouts: list = field(default_factory=list)
    recording: bool = False
    fail_session: bool = False

    def add_element(self, using, value, *, text="", displayed=True, enabled=True, **attributes):
        element = FakeElement(
            element_id=f"el-{len(self.by_id) + 1}",
            text=text,
            displayed=displayed,
            enabled=enabled,
            attributes=attributes,
        )
        self.elements.setdefault((using, value), []).append(element)
        self.by_id[element.element_id] = element
        return element

    def remove_elements(self, using, value):
        for element in self.elements.pop((using, value), []):
            self.by_id.pop(element.element_id, None)


def _build_fake_appium(state):
    app = Flask("fake_appium")

    def error(status, name, message):
        return jsonify({"value": {"error": name, "message": message}}), status

    def check_session(sid):
        if not state.active or sid != state.session_id:
            return error(404, "invalid session id", f"Unknown session {sid}")
        return None

    def element_or_404(sid, eid):
        bad = check_session(sid)
        if bad:
            return None, bad
        element = state.by_id.get(eid)
        if element is None:
            return None, error(404, "stale element reference", f"Element {eid} is gone")
        return element, None

    @app.get("/status")
    def status():
        return jsonify({"value": {"ready": True, "build": {"version": "2.0.0"}}})

    @app.post("/session")
    def new_session():
        if state.fail_session:
            return error(500, "session not created", "No device connected")
        body = request.get_json()
        caps = body["capabilities"]["alwaysMatch"]
        state.active = True
        state.capabilities = {k.split(":", 1)[-1]: v for k, v in caps.items()}
        return jsonify({"value": {"sessionId": state.session_id, "capabilities": state.capabilities}})

    @app.delete("/session/<sid>")
    def delete_session(sid):
        bad = check_session(sid)
        if bad:
            return bad
        state.active = False
        return jsonify({"value": None})

    @app.post("/session/<sid>/timeouts")
    def timeouts(sid):
        bad = check_session(sid)
        if bad:
            return bad
        state.timeouts.append(request.get_json())
        return jsonify({"value": None})

    @app.get("/session/<sid>/source")
    def source(sid):
        return check_session(sid) or jsonify({"value": state.page_source})

    @app.get("/session/<sid>/screenshot")
    def screenshot(sid):
        return check_session(sid) or jsonify({"value": base64.b64encode(b"\x89PNG fake").decode()})

    @app.get("/session/<sid>/window/rect")
    def window_rect(sid):
        return check_session(sid) or jsonify({"value": {"x": 0, "y": 0, "width": 400, "height": 800}})

    @app.post("/session/<sid>/elements")
    def find_elements(sid):
        bad = check_session(sid)
        if bad:
            return bad
        body = request.get_json()
        found = state.elements.get((body["using"], body["value"]), [])
        return jsonify({"value": [{W3C_ELEMENT_KEY: e.element_id} for e in found]})

    @app.get("/session/<sid>/element/<eid>/text")
    def element_text(sid, eid):
        element, bad = element_or_404(sid, eid)
        return bad or jsonify({"value": element.text})

    @app.get("/session/<sid>/element/<eid>/displayed")
    def element_displayed(sid, eid):
        element, bad = element_or_404(sid, eid)
        return bad or jsonify({"value": element.displayed})

    @app.get("/session/<sid>/element/<eid>/enabled")
    def element_enabled(sid, eid):
        element, bad = element_or_404(sid, eid)
        return bad or jsonify({"value": element.enabled})

    @app.get("/session/<sid>/element/<eid>/rect")
    def element_rect(sid, eid):
        element, bad = element_or_404(sid, eid)
        return bad or jsonify({"value": {"x": 10, "y": 20, "width": 100, "height": 40}})

    @app.get("/session/<sid>/element/<eid>/attribute/<name>")
    def element_attribute(sid, eid, name):
        element, bad = element_or_404(sid, eid)
        return bad or jsonify({"value": element.attributes.get(name)})

    @app.post("/session/<sid>/element/<eid>/click")
    def element_click(sid, eid):
        element, bad = element_or_404(sid, eid)
        if bad:
            return bad
        state.clicks.append(eid)
        return jsonify({"value": None})

    @app.post("/session/<sid>/element/<eid>/clear")
    def element_clear(sid, eid):
        element, bad = element_or_404(sid, eid)
        if bad:
            return bad
        state.cleared.append(eid)
        element.text = ""
        return jsonify({"value": None})

    @app.post("/session/<sid>/element/<eid>/value")
    def element_value(sid, eid):
        element, bad = element_or_404(sid, eid)
        if bad:
            return bad
        text = request.get_json()["text"]
        state.typed.append((eid, text))
        element.text += text
        return jsonify({"value": None})

    @app.post("/session/<sid>/execute/sync")
    def execute(sid):
        bad = check_session(sid)
        if bad:
            return bad
        body = request.get_json()
        state.scripts.append((body["script"], body["args"]))
        if body["script"] == "mobile: hideKeyboard":
            return error(500, "unknown error", "Soft keyboard not present")
        return jsonify({"value": True})

    @app.route("/session/<sid>/actions", methods=["POST", "DELETE"])
    def actions(sid):
        bad = check_session(sid)
        if bad:
            return bad
        if request.method == "POST":
            state.actions.append(request.get_json()["actions"][0]["actions"])
        return jsonify({"value": None})

    @app.post("/session/<sid>/appium/start_recording_screen")
    def start_recording(sid):
        bad = check_session(sid)
        if bad:
            return bad
        state.recording = True
        return jsonify({"value": None})

    @app.post("/session/<sid>/appium/stop_recording_screen")
    def stop_recording(sid):
        bad = check_session(sid)
        if bad:
            return bad
        state.recording = False
        return jsonify({"value": base64.b64encode(b"fake mp4 bytes").decode()})

    return app


@pytest.fixture
def fake_appium():
    """A running fake Appium server; yields its mutable state."""
    state = FakeAppiumState()
    with _ServerThread(_build_fake_appium(state)) as server:
        state.url = server.url
        yield state


@pytest.fixture
def config(fake_appium, tmp_path):
    cfg = TestConfig(
        appium_server_url=fake_appium.url,
        platform_name="Android",
        platform_version="14",
        device_name="Pixel 7 Emulator",
        app_package="org.example.app",
        app_activity=".MainActivity",
        implicit_wait=0,
        request_timeout_s=5.0,
        report_path=str(tmp_path / "reports"),
        artifacts_dir=str(tmp_path / "artifacts"),
    )
    set_config(cfg)
    return cfg


@pytest.fixture(autouse=True)
def _isolate_driver_and_config():
    yield
    quit_driver()
    reset_config()


# -- stub REST backend -----------------------------------------------------


@dataclass
class BackendState:
    url: str = ""
    tokens_issued: int = 0
    token_forms: list = field(default_factory=list)
    requests: list = field(default_factory=list)
    existing_thread_id: str = ""
    created_thread: dict = field(default_factory=lambda: {"id": "thread-new"})
    announcement_attachment_status: int = 201
    classwork: dict = field(default_factory=dict)
    failing_filters: set = field(default_factory=set)
    deleted: list = field(default_factory=list)
    organizations: list = field(default_factory=list)
    media_fail: bool = False


STAFF = ("staff@example.com", "staff-pass")
STUDENT = ("student@example.com", "student-pass")
CLIENT_SECRET = "client-123"


def _build_backend(state):
    app = Flask("stub_backend")

    def authorized():
        return request.headers.get("Authorization", "").startswith("Bearer access-")

    def record():
        state.requests.append((request.method, request.path, request.get_json(silent=True)))

    @app.post("/oauth/token")
    def token():
        form = request.form.to_dict()
        state.token_forms.append(form)
        if form.get("client_id") != CLIENT_SECRET:
            return jsonify({"error": "invalid_client"}), 401
        if form.get("grant_type") == "refresh_token":
            state.tokens_issued += 1
            return jsonify({"id_token": "id-refreshed", "access_token": f"access-{state.tokens_issued}"})
        if (form.get("username"), form.get("password")) not in (STAFF, STUDENT):
            return jsonify({"error": "invalid_grant"}), 400
        state.tokens_issued += 1
        return jsonify(
            {
                "id_token": f"id-{state.tokens_issued}",
                "access_token": f"access-{state.tokens_issued}",
                "refresh_token": f"refresh-{state.tokens_issued}",
                "expires_in": 1800,
            }
        )

    @app.get("/oauth/userinfo")
    def userinfo():
        if not authorized():
            return jsonify({"error": "unauthorized"}), 401
        return jsonify({"sub": "user-1"})

    @app.post("/v1/chat_threads/find")
    def find_thread():
        record()
        if state.existing_thread_id:
            return jsonify({"id": state.existing_thread_id})
        return jsonify({"error": "not found"}), 404

    @app.post("/v1/chat_threads")
    def create_thread():
        record()
        return jsonify(state.created_thread)

    @app.post("/v1/chat_threads/<thread_id>/messages")
    def post_message(thread_id):
        record()
        if not authorized():
            return jsonify({"error": "unauthorized"}), 401
        return jsonify({"id": "msg-1", "chatThreadId": thread_id})

    @app.post("/v1/announcements/attachments")
    def announcement_attachment():
        record()
        status = state.announcement_attachment_status
        if status != 201:
            return jsonify({"error": "upload failed"}), status
        return jsonify({"id": "att-img", "presignedUrl": "https://uploads.example.com/att-img"}), 201

    @app.post("/v1/announcements")
    def create_announcement():
        record()
        return jsonify({"id": "ann-1"})

    @app.post("/v1/assignments/attachments")
    def assignment_attachment():
        record()
        return jsonify({"id": "att-pdf", "presignedUrl": "https://uploads.example.com/att-pdf"})

    @app.post("/v1/assignments")
    def create_assignment():
        record()
        return jsonify({"id": "asg-1"})

    @app.get("/v1/classes/<class_id>/classwork")
    def classwork(class_id):
        record()
        f = request.args.get("filter")
        if f in state.failing_filters:
            return jsonify({"error": "boom"}), 500
        ids = state.classwork.get(f, [])
        return jsonify({"streamObjects": [{"message": {"id": i}} for i in ids]})

    @app.delete("/v1/assignments/<assignment_id>")
    def delete_assignment(assignment_id):
        record()
        state.deleted.append(assignment_id)
        return jsonify({})

    @app.get("/api/v1/p/<school_id>/secondary_organizations/")
    def organizations(school_id):
        if state.media_fail:
            return jsonify({"error": "down"}), 503
        return jsonify(state.organizations)

    @app.get("/api/v6/secondary_organizations/<org_id>/live_feeds/")
    def live_feeds(org_id):
        if state.media_fail:
            return jsonify({"error": "down"}), 503
        return jsonify({"results": [{"id": 1, "title": "Game day", "created_at": "2024-05-01"}, {"id": 2}]})

    @app.get("/api/v2/s/<events_id>/events")
    def events(events_id):
        return jsonify({"results": [{"id": "e1", "title": "Open house", "start_date": "2024-06-01"}]})

    @app.get("/api/v5/custom_sections/<news_id>/articles")
    def news(news_id):
        return jsonify({"count": 0})

    @app.get("/api/v6/secondary_organizations/<org_id>/scores_schedules")
    def athletics(org_id):
        return jsonify({"results": [{"id": "g1", "sport": "Soccer", "opponent": "Rivals", "score": "2-1"}]})

    @app.get("/api/v6/secondary_organizations/<org_id>/directories")
    def directories(org_id):
        return jsonify({"results": [{"id": "s1", "name": "Ada", "email": "ada@example.com"}]})

    @app.get("/api/v6/secondary_organizations/<org_id>/dinings")
    def dinings(org_id):
        return jsonify({"results": [{"id": "d1", "name": "Cafeteria", "hours": "8-15"}]})

    @app.get("/users/me")
    def me():
        if not authorized():
            return jsonify({"error": "unauthorized"}), 401
        return jsonify({"id": "u1", "username": "student", "email": "student@example.com", "first_name": "Sam"})

    return app


@pytest.fixture
def backend():
    """A running stub of the auth, backend and media APIs; yields its state."""
    state = BackendState()
    with _ServerThread(_build_backend(state)) as server:
        state.url = server.url
        yield state


@pytest.fixture
def api_config(backend):
    return TestConfig(
        auth_url=backend.url,
        backend_api_url=backend.url,
        media_api_url=backend.url,
        client_secret=CLIENT_SECRET,
        staff_username=STAFF[0],
        staff_password=STAFF[1],
        test_username=STUDENT[0],
        test_password=STUDENT[1],
        ios_class_id="class-ios",
        android_class_id="class-android",
        user_rooms_id="user-42",
        request_timeout_s=5.0,
    )
