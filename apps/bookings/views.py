"""API views for the booking domain.

Views translate requests into lifecycle commands and dispatch them on the
message bus. Domain errors propagate to the project exception handler,
which maps them to HTTP statuses.
"""

from __future__ import annotations

from django.db.models import Q  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from shared.application.message_bus import message_bus

from .application.command_handlers import (
    ApproveBookingCommand,
    ApproveModificationCommand,
    CancelBookingCommand,
    CheckConflictQuery,
    CreateBookingCommand,
    QuoteRentQuery,
    RejectBookingCommand,
    RejectModificationCommand,
    RequestModificationCommand,
)
from .models import Booking
from .serializers import (
    BookingCreateSerializer,
    BookingModifySerializer,
    BookingSerializer,
    StayQuerySerializer,
)


def _money(value) -> str:
    return f"{value.amount:.2f}"


class BookingViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Viewset for creating bookings and moving them through the lifecycle."""

    queryset = Booking.objects.select_related("apartment", "tenant", "apartment__owner").all()
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = r"\d+"
    bus = message_bus

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return BookingCreateSerializer
        if self.action == "modify":
            return BookingModifySerializer
        if self.action in ("check_conflict", "quote"):
            return StayQuerySerializer
        return BookingSerializer

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if user.is_platform_admin():
            return qs
        return qs.filter(Q(tenant=user) | Q(apartment__owner=user))

    def _validated(self, request) -> dict:
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    def create(self, request, *args, **kwargs):  # type: ignore
        data = self._validated(request)
        result = self.bus.handle_command(
            CreateBookingCommand(
                tenant_id=request.user.id,
                apartment_id=data["apartment_id"],
                check_in=data["check_in_date"],
                check_out=data["check_out_date"],
                payment_method=data["payment_method"],
                number_of_guests=data.get("number_of_guests"),
            )
        )
        return Response(
            {
                "booking_id": result.booking_id,
                "status": result.status,
                "total_rent": _money(result.total_rent),
                "check_in_date": result.check_in.isoformat(),
                "check_out_date": result.check_out.isoformat(),
                "remaining_balance": f"{result.remaining_balance:.2f}",
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):  # type: ignore
        result = self.bus.handle_command(
            ApproveBookingCommand(booking_id=int(pk), owner_id=request.user.id)
        )
        return Response({"booking_id": result.booking_id, "status": result.status})

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):  # type: ignore
        result = self.bus.handle_command(
            RejectBookingCommand(booking_id=int(pk), owner_id=request.user.id)
        )
        return Response(
            {
                "booking_id": result.booking_id,
                "status": result.status,
                "refund_amount": _money(result.refund_amount),
            }
        )

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        result = self.bus.handle_command(
            CancelBookingCommand(booking_id=int(pk), tenant_id=request.user.id)
        )
        return Response(
            {
                "booking_id": result.booking_id,
                "status": result.status,
                "refund_amount": _money(result.refund_amount),
                "cancellation_fee": _money(result.cancellation_fee),
            }
        )

    @action(detail=True, methods=["post"])
    def modify(self, request, pk=None):  # type: ignore
        data = self._validated(request)
        result = self.bus.handle_command(
            RequestModificationCommand(
                booking_id=int(pk),
                tenant_id=request.user.id,
                check_in=data.get("check_in_date"),
                check_out=data.get("check_out_date"),
                number_of_guests=data.get("number_of_guests"),
            )
        )
        return Response(
            {
                "booking_id": result.booking_id,
                "status": result.status,
                "check_in_date": result.check_in.isoformat(),
                "check_out_date": result.check_out.isoformat(),
                "number_of_guests": result.number_of_guests,
                "total_rent": _money(result.total_rent),
                "additional_payment": _money(result.additional_payment),
            }
        )

    @action(detail=True, methods=["post"], url_path="approve-modification")
    def approve_modification(self, request, pk=None):  # type: ignore
        result = self.bus.handle_command(
            ApproveModificationCommand(booking_id=int(pk), owner_id=request.user.id)
        )
        return Response({"booking_id": result.booking_id, "status": result.status})

    @action(detail=True, methods=["post"], url_path="reject-modification")
    def reject_modification(self, request, pk=None):  # type: ignore
        result = self.bus.handle_command(
            RejectModificationCommand(booking_id=int(pk), owner_id=request.user.id)
        )
        return Response({"booking_id": result.booking_id, "status": result.status})

    @action(detail=False, methods=["post"], url_path="check-conflict")
    def check_conflict(self, request):  # type: ignore
        data = self._validated(request)
        has_conflict = self.bus.handle_command(
            CheckConflictQuery(
                apartment_id=data["apartment_id"],
                check_in=data["check_in_date"],
                check_out=data["check_out_date"],
                exclude_booking_id=data.get("exclude_booking_id"),
            )
        )
        return Response({"has_conflict": has_conflict})

    @action(detail=False, methods=["post"])
    def quote(self, request):  # type: ignore
        data = self._validated(request)
        rent = self.bus.handle_command(
            QuoteRentQuery(
                apartment_id=data["apartment_id"],
                check_in=data["check_in_date"],
                check_out=data["check_out_date"],
            )
        )
        return Response({"total_rent": _money(rent)})
