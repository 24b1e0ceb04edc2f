"""API views for ratings."""

from __future__ import annotations

from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.response import Response  # type: ignore

from .models import Rating
from .serializers import RatingCreateSerializer, RatingSerializer
from .services import submit_rating


class RatingViewSet(mixins.CreateModelMixin, mixins.ListModelMixin, viewsets.GenericViewSet):
    """Tenants rate their completed stays and list the ratings they gave."""

    serializer_class = RatingSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_serializer_class(self):  # type: ignore
        if self.action == 'create':
            return RatingCreateSerializer
        return RatingSerializer

    def get_queryset(self):  # type: ignore
        return Rating.objects.select_related('booking', 'apartment').filter(tenant=self.request.user)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        rating = submit_rating(
            data['booking_id'],
            request.user.id,
            data['rating'],
            data.get('review_text') or '',
        )
        return Response(RatingSerializer(rating).data, status=status.HTTP_201_CREATED)
