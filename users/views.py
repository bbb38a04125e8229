# ==================== USERS/VIEWS.PY ====================
import logging

from django.db.models import Count
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, mixins, status, permissions, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework_simplejwt.tokens import RefreshToken

from locations.serializers import ParkingLocationListSerializer
from utils.permissions import IsSuperAdmin
from .models import CustomUser, Vehicle
from .serializers import (
    UserRegistrationSerializer,
    UserProfileSerializer,
    UserAdminSerializer,
    VehicleSerializer,
    FavoriteLocationSerializer,
)
from .services import UserService

logger = logging.getLogger(__name__)


class UserViewSet(viewsets.ViewSet):
    """User registration and profile management"""
    permission_classes = [permissions.AllowAny]

    def get_permissions(self):
        if self.action in ['profile', 'stats']:
            return [permissions.IsAuthenticated()]
        return [permission() for permission in self.permission_classes]

    @action(detail=False, methods=['post'])
    def register(self, request):
        """Register new customer account"""
        serializer = UserRegistrationSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            refresh = RefreshToken.for_user(user)
            logger.info(f"User registered: {user.username}")
            return Response({
                'user': UserProfileSerializer(user).data,
                'refresh': str(refresh),
                'access': str(refresh.access_token),
                'message': 'User registered successfully'
            }, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    @action(detail=False, methods=['get', 'put', 'patch'])
    def profile(self, request):
        """Get or update user profile"""
        if request.method == 'GET':
            serializer = UserProfileSerializer(request.user)
            return Response(serializer.data)

        serializer = UserProfileSerializer(request.user, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        """Booking totals, spending and most used location for the current user"""
        return Response(UserService.get_booking_stats(request.user))


class VehicleViewSet(viewsets.ModelViewSet):
    """Register and manage the current user's vehicles"""
    serializer_class = VehicleSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return Vehicle.objects.filter(owner=self.request.user)

    def perform_create(self, serializer):
        vehicle = serializer.save(owner=self.request.user)
        self._keep_single_default(vehicle)

    def perform_update(self, serializer):
        vehicle = serializer.save()
        self._keep_single_default(vehicle)

    def _keep_single_default(self, vehicle):
        if vehicle.is_default:
            self.get_queryset().exclude(pk=vehicle.pk).update(is_default=False)


class FavoriteLocationViewSet(viewsets.ViewSet):
    """The current user's favourite parking locations; pk is the location id"""
    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = r'\d+'

    def list(self, request):
        locations = request.user.favorite_locations.filter(is_active=True).prefetch_related('images')
        serializer = ParkingLocationListSerializer(locations, many=True, context={'request': request})
        return Response(serializer.data)

    def create(self, request):
        serializer = FavoriteLocationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        location, added = UserService.add_favorite(request.user, serializer.validated_data['location_id'])
        if not added:
            return Response({'error': 'Location is already in favorites'}, status=status.HTTP_400_BAD_REQUEST)
        return Response({'message': 'Location added to favorites', 'location_id': location.id},
                        status=status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):
        if not UserService.remove_favorite(request.user, pk):
            return Response({'error': 'Location is not in favorites'}, status=status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)


class UserAdminViewSet(mixins.ListModelMixin,
                       mixins.RetrieveModelMixin,
                       mixins.UpdateModelMixin,
                       viewsets.GenericViewSet):
    """Super admin user management: roles, activation and location assignments

    Query params: role, is_active, search (username, email, name), ordering
    """
    queryset = CustomUser.objects.prefetch_related('assigned_locations')
    serializer_class = UserAdminSerializer
    permission_classes = [IsSuperAdmin]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['role', 'is_active']
    search_fields = ['username', 'email', 'first_name', 'last_name']
    ordering_fields = ['created_at', 'username', 'last_login']
    ordering = ['-created_at']

    def perform_update(self, serializer):
        user = serializer.save()
        logger.info(f"User {user.id} updated by super admin {self.request.user.id}: "
                    f"role={user.role} active={user.is_active}")

    @action(detail=False, methods=['get'])
    def roles(self, request):
        """Account counts per role"""
        counts = dict(CustomUser.objects.values_list('role').annotate(count=Count('id')).order_by())
        return Response({role: counts.get(role, 0) for role, _ in CustomUser.ROLE_CHOICES})
