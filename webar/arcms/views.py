from django.shortcuts import render, redirect
from django.http import JsonResponse, HttpResponse
from django.contrib import messages
from django.core.validators import validate_ipv46_address
from django.core.exceptions import ValidationError
from django.db.models import Count
from django.urls import reverse
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST, require_http_methods

import io
import json
import re
import logging

import qrcode

from .assets import (
    InvalidMarkerId,
    create_marker,
    delete_marker,
    get_marker,
    list_markers,
    serialize_marker,
    serialize_markers,
)
from .auth import (
    admin_page,
    clear_session_cookie,
    get_session,
    issue_token,
    require_admin,
    set_session_cookie,
    verify_credentials,
)
from .compilers import CompilerError
from .descriptor import (
    DescriptorError,
    NoMarkersError,
    descriptor_exists,
    descriptor_url,
    generate_descriptor,
    target_manifest,
)
from .forms import LoginForm, MarkerForm
from .models import AnalyticsEvent, Marker

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================
def parse_json_body(request):
    """Decoded JSON object body, or None when the body is not a JSON object"""
    try:
        data = json.loads(request.body or b"{}")
    except (ValueError, UnicodeDecodeError):
        return None
    return data if isinstance(data, dict) else None


def client_ip(request):
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")


def clean_ip(value):
    try:
        validate_ipv46_address(value)
    except ValidationError:
        return None
    return value


def form_errors(form):
    return {field: [str(e) for e in errors] for field, errors in form.errors.items()}


def is_missing_fields(form):
    return any(
        error.code == "required"
        for errors in form.errors.as_data().values()
        for error in errors
    )


def server_error(message, exc):
    return JsonResponse({"error": message, "detail": str(exc)}, status=500)


def regenerate_after_change(request):
    """Regenerate the descriptor for the admin UI, a failure is only a warning"""
    try:
        result = generate_descriptor(request)
    except NoMarkersError:
        messages.info(request, "No markers left, the targets file was removed.")
    except (CompilerError, DescriptorError) as e:
        logger.warning(f"Targets regeneration failed: {e}")
        messages.warning(request, f"Saved, but the AR targets file could not be regenerated: {e}")
    except Exception as e:
        logger.exception("Unexpected error regenerating targets")
        messages.warning(request, f"Saved, but the AR targets file could not be regenerated: {e}")
    else:
        messages.success(request, f"AR targets regenerated for {result.marker_count} marker(s).")


# ============================================================================
# VIEWER
# ============================================================================
@require_GET
def viewer(request):
    """Camera AR viewer, everything else happens in static/arcms/viewer.js"""
    context = {
        "markers_api": reverse("markers_api"),
        "targets_api": reverse("targets_file_api"),
        "analytics_api": reverse("analytics_api"),
        "admin_url": reverse("admin_dashboard"),
    }
    return render(request, "arcms/viewer.html", context)


@require_GET
def viewer_qr(request):
    """PNG QR code pointing at the viewer, for printing next to markers"""
    viewer_url = request.build_absolute_uri(reverse("viewer"))

    qr = qrcode.QRCode(version=1, box_size=10, border=5)
    qr.add_data(viewer_url)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer)
    return HttpResponse(buffer.getvalue(), content_type="image/png")


# ============================================================================
# ADMIN UI
# ============================================================================
def admin_login(request):
    next_url = request.POST.get("next") or request.GET.get("next") or ""
    if not url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()},
                                           require_https=request.is_secure()):
        next_url = reverse("admin_dashboard")

    if get_session(request) is not None and request.method != "POST":
        return redirect(next_url)

    if request.method == "POST":
        form = LoginForm(request.POST)
        if form.is_valid() and verify_credentials(form.cleaned_data["username"],
                                                  form.cleaned_data["password"]):
            token, _expires = issue_token()
            logger.info("Admin signed in from %s", client_ip(request))
            return set_session_cookie(redirect(next_url), token)

        logger.warning("Failed admin sign-in from %s", client_ip(request))
        messages.error(request, "Invalid username or password.")
    else:
        form = LoginForm()

    return render(request, "arcms/login.html", {"form": form, "next": next_url})


@require_POST
def admin_logout(request):
    return clear_session_cookie(redirect("admin_login"))


@admin_page
@require_GET
def admin_dashboard(request):
    return render_dashboard(request)


def render_dashboard(request, form=None, status=200):
    markers = list_markers().annotate(detections=Count("analytics_events"))
    rows = []
    for index, marker in enumerate(markers):
        data = serialize_marker(marker, request, target_index=index)
        data["detections"] = marker.detections
        data["externalVideo"] = marker.has_external_video
        rows.append(data)

    context = {
        "form": form or MarkerForm(),
        "markers": rows,
        "descriptor_url": descriptor_url(request),
        "descriptor_exists": descriptor_exists(),
        "session": get_session(request),
    }
    return render(request, "arcms/dashboard.html", context, status=status)


@admin_page
@require_POST
def admin_create_marker(request):
    form = MarkerForm(request.POST, request.FILES)
    if not form.is_valid():
        messages.error(request, "Please fix the errors below.")
        return render_dashboard(request, form=form, status=400)

    try:
        marker = create_marker(
            title=form.cleaned_data["title"],
            marker_image=form.cleaned_data["markerImage"],
            video=form.cleaned_data.get("videoFile"),
            video_url=form.cleaned_data.get("videoUrl", ""),
            plane_width=form.cleaned_data.get("planeWidth"),
            plane_height=form.cleaned_data.get("planeHeight"),
        )
    except Exception as e:
        logger.exception("Admin upload failed")
        messages.error(request, f"Upload failed: {e}")
        return redirect("admin_dashboard")

    messages.success(request, f'Marker "{marker.title}" created.')
    regenerate_after_change(request)
    return redirect("admin_dashboard")


@admin_page
@require_POST
def admin_delete_marker(request, marker_id):
    try:
        marker = delete_marker(marker_id)
    except (InvalidMarkerId, Marker.DoesNotExist):
        messages.error(request, "Marker not found.")
        return redirect("admin_dashboard")
    except Exception as e:
        logger.exception(f"Admin delete of {marker_id} failed")
        messages.error(request, f"Delete failed: {e}")
        return redirect("admin_dashboard")

    messages.success(request, f'Marker "{marker.title}" deleted.')
    regenerate_after_change(request)
    return redirect("admin_dashboard")


@admin_page
@require_POST
def admin_generate_targets(request):
    regenerate_after_change(request)
    return redirect("admin_dashboard")


# ============================================================================
# AUTH API (credentials provider)
# ============================================================================
@require_GET
def auth_providers(request):
    return JsonResponse({
        "credentials": {
            "id": "credentials",
            "name": "Admin Login",
            "type": "credentials",
            "signinUrl": request.build_absolute_uri(reverse("admin_login")),
            "callbackUrl": request.build_absolute_uri(reverse("auth_callback_credentials")),
        }
    })


@csrf_exempt
@require_POST
def auth_callback_credentials(request):
    if request.content_type == "application/json":
        data = parse_json_body(request) or {}
    else:
        data = request.POST

    username = data.get("username")
    password = data.get("password")
    if not isinstance(username, str) or not isinstance(password, str) \
            or not verify_credentials(username, password):
        logger.warning("Failed admin sign-in from %s", client_ip(request))
        return JsonResponse({"error": "Invalid credentials"}, status=401)

    token, expires = issue_token()
    logger.info("Admin signed in from %s", client_ip(request))
    response = JsonResponse({
        "user": {"name": username},
        "expires": expires.isoformat(),
        "token": token,
    })
    return set_session_cookie(response, token)


@require_GET
def auth_session(request):
    return JsonResponse(get_session(request) or {})


@csrf_exempt
@require_POST
def auth_signout(request):
    return clear_session_cookie(JsonResponse({"success": True}))


# ============================================================================
# MARKER API
# ============================================================================
@csrf_exempt
@require_http_methods(["GET", "POST", "DELETE"])
def markers_api(request):
    if request.method == "GET":
        return list_markers_api(request)
    if request.method == "POST":
        return create_marker_api(request)
    return delete_marker_by_body_api(request)


def list_markers_api(request):
    try:
        return JsonResponse(serialize_markers(list_markers(), request), safe=False)
    except Exception as e:
        logger.exception("GET /api/markers failed")
        return server_error("Failed to fetch markers", e)


@require_admin
def create_marker_api(request):
    form = MarkerForm(request.POST, request.FILES)
    if not form.is_valid():
        error = "Missing required fields" if is_missing_fields(form) else "Invalid marker upload"
        return JsonResponse({"error": error, "fields": form_errors(form)}, status=400)

    try:
        marker = create_marker(
            title=form.cleaned_data["title"],
            marker_image=form.cleaned_data["markerImage"],
            video=form.cleaned_data.get("videoFile"),
            video_url=form.cleaned_data.get("videoUrl", ""),
            plane_width=form.cleaned_data.get("planeWidth"),
            plane_height=form.cleaned_data.get("planeHeight"),
        )
    except Exception as e:
        logger.exception("POST /api/markers failed")
        return server_error("Failed to create marker", e)

    return JsonResponse(serialize_marker(marker, request), status=201)


@require_admin
def delete_marker_by_body_api(request):
    data = parse_json_body(request)
    if not data or not data.get("id"):
        return JsonResponse({"error": "Missing required fields", "fields": {"id": ["This field is required."]}},
                            status=400)
    return _delete_marker_response(data["id"])


@csrf_exempt
@require_http_methods(["DELETE"])
@require_admin
def marker_detail_api(request, marker_id):
    return _delete_marker_response(marker_id)


def _delete_marker_response(marker_id):
    try:
        delete_marker(marker_id)
    except InvalidMarkerId:
        return JsonResponse({"error": "Invalid marker id"}, status=400)
    except Marker.DoesNotExist:
        return JsonResponse({"error": "Marker not found"}, status=404)
    except Exception as e:
        logger.exception(f"DELETE /api/markers/{marker_id} failed")
        return server_error("Failed to delete marker", e)

    return JsonResponse({"success": True, "id": str(marker_id)})


# ============================================================================
# TARGETS DESCRIPTOR API
# ============================================================================
@csrf_exempt
@require_http_methods(["GET", "POST"])
def targets_file_api(request):
    if request.method == "GET":
        return JsonResponse({
            "publicUrl": descriptor_url(request),
            "exists": descriptor_exists(),
        })
    return generate_targets_file_api(request)


@require_admin
def generate_targets_file_api(request):
    try:
        result = generate_descriptor(request)
    except NoMarkersError:
        return JsonResponse({"error": "No markers found"}, status=404)
    except (CompilerError, DescriptorError) as e:
        logger.error(f"Targets generation failed: {e}")
        return server_error("Failed to generate targets file", e)
    except Exception as e:
        logger.exception("Unexpected error generating targets")
        return server_error("Failed to generate targets file", e)

    return JsonResponse({
        "success": True,
        "publicUrl": result.url,
        "markersProcessed": result.marker_count,
        "size": result.size,
    })


@require_GET
@require_admin
def targets_manifest_api(request):
    try:
        manifest = target_manifest(request)
    except Exception as e:
        logger.exception("GET /api/generate-targets failed")
        return server_error("Failed to generate targets", e)

    if not manifest:
        return JsonResponse({"error": "No markers found"}, status=404)
    return JsonResponse({"success": True, "markers": manifest})


# ============================================================================
# ANALYTICS API
# ============================================================================
@csrf_exempt
@require_POST
def analytics_api(request):
    data = parse_json_body(request)
    if data is None:
        return JsonResponse({"success": False, "message": "Invalid JSON body"}, status=400)

    marker_id = data.get("markerId")
    if not isinstance(marker_id, str) or not UUID_PATTERN.fullmatch(marker_id):
        return JsonResponse({"success": False, "message": "Invalid marker ID"}, status=400)

    try:
        marker = get_marker(marker_id)
    except (InvalidMarkerId, Marker.DoesNotExist):
        return JsonResponse({"success": False, "message": "Marker not found"}, status=404)

    ip_address = data.get("ipAddress")
    if not isinstance(ip_address, str) or ip_address.lower() in ("", "unknown"):
        ip_address = client_ip(request)

    user_agent = data.get("userAgent")
    if not isinstance(user_agent, str):
        user_agent = request.headers.get("User-Agent", "")

    try:
        AnalyticsEvent.objects.create(
            marker=marker,
            user_agent=user_agent[:1000],
            ip_address=clean_ip(ip_address) if ip_address else None,
        )
    except Exception as e:
        logger.exception("Analytics write failed")
        return server_error("Failed to log analytics", e)

    return JsonResponse({"success": True})
