# arcms/urls.py
from django.urls import path
from . import views

urlpatterns = [
    # Viewer
    path('', views.viewer, name='viewer'),
    path('viewer/qr.png', views.viewer_qr, name='viewer_qr'),

    # Admin UI
    path('admin/', views.admin_dashboard, name='admin_dashboard'),
    path('admin/login/', views.admin_login, name='admin_login'),
    path('admin/logout/', views.admin_logout, name='admin_logout'),
    path('admin/markers/', views.admin_create_marker, name='admin_create_marker'),
    path('admin/markers/<str:marker_id>/delete/', views.admin_delete_marker, name='admin_delete_marker'),
    path('admin/targets/', views.admin_generate_targets, name='admin_generate_targets'),

    # Auth API (credentials provider)
    path('api/auth/providers', views.auth_providers, name='auth_providers'),
    path('api/auth/callback/credentials', views.auth_callback_credentials, name='auth_callback_credentials'),
    path('api/auth/session', views.auth_session, name='auth_session'),
    path('api/auth/signout', views.auth_signout, name='auth_signout'),

    # Markers
    path('api/markers', views.markers_api, name='markers_api'),
    path('api/markers/<str:marker_id>', views.marker_detail_api, name='marker_detail_api'),

    # Targets descriptor
    path('api/generate-targets-file', views.targets_file_api, name='targets_file_api'),
    path('api/generate-targets', views.targets_manifest_api, name='targets_manifest_api'),

    # Analytics
    path('api/analytics', views.analytics_api, name='analytics_api'),
]
