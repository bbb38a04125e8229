"""
URL configuration for parking_platform project.

REST endpoints live under /api/v1/. The Socket.IO endpoint (/socket.io/) is
served by the WSGI wrapper in parking_platform.wsgi, not by these routes.
"""
# ==================== PARKING_PLATFORM/URLS.PY ====================
from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView, TokenObtainPairView

from users.views import UserViewSet, VehicleViewSet, FavoriteLocationViewSet, UserAdminViewSet
from locations.views import ParkingLocationViewSet
from bookings.views import BookingViewSet
from .views import health_check

# Create router and register viewsets
router = DefaultRouter()
router.register(r'locations', ParkingLocationViewSet, basename='location')
router.register(r'bookings', BookingViewSet, basename='booking')
router.register(r'vehicles', VehicleViewSet, basename='vehicle')
router.register(r'favorites', FavoriteLocationViewSet, basename='favorite')
router.register(r'admin/users', UserAdminViewSet, basename='admin-user')

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API versioning
    path('api/v1/', include([
        # Authentication endpoints
        path('auth/', include([
            path('register/', UserViewSet.as_view({'post': 'register'}), name='register'),
            path('token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
            path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
            path('profile/', UserViewSet.as_view({'get': 'profile', 'put': 'profile', 'patch': 'profile'}),
                 name='profile'),
            path('profile/stats/', UserViewSet.as_view({'get': 'stats'}), name='profile-stats'),
        ])),

        path('health/', health_check, name='health'),

        # API routes
        path('', include(router.urls)),
    ])),
] + static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
