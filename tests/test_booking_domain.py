"""
Тесты для доменной модели контекста бронирования.
"""
from datetime import date
from decimal import Decimal

import pytest
from conftest import make_guest

from novastay.booking.domain import (
    Booking,
    BookingLifecycle,
    BookingStatus,
    ConflictDetector,
)
from novastay.shared_kernel import (
    DateRange,
    InvalidTransitionError,
    OverlapError,
    ValidationError,
)


def booking(
    booking_id: str,
    check_in: date,
    check_out: date,
    room_id: str = "101",
    status: BookingStatus = BookingStatus.CONFIRMED,
) -> Booking:
    guest = None if status == BookingStatus.BLOCKED else make_guest()
    return Booking(
        id=booking_id,
        room_id=room_id,
        guest=guest,
        adults=0 if status == BookingStatus.BLOCKED else 1,
        check_in_date=check_in,
        check_out_date=check_out,
        status=status,
    )


class TestBooking:
    """Тесты для класса Booking."""

    def test_create_booking(self):
        # Действие
        created = Booking.create(
            room_id="101",
            guest=make_guest(),
            check_in_date=date(2024, 7, 1),
            check_out_date=date(2024, 7, 5),
            total_amount=Decimal("20000"),
            paid_amount=Decimal("5000"),
        )

        # Проверка
        assert created.nights == 4
        assert created.due == Decimal("15000")
        assert created.status == BookingStatus.CONFIRMED
        assert created.label == "Иван Иванов"

    def test_overpayment_gives_negative_due(self):
        created = booking("b1", date(2024, 7, 1), date(2024, 7, 2))
        overpaid = created.model_copy(
            update={"total_amount": Decimal("100"), "paid_amount": Decimal("150")}
        )

        assert overpaid.due == Decimal("-50")

    def test_check_out_must_follow_check_in(self):
        with pytest.raises(ValidationError):
            Booking.create(
                room_id="101",
                guest=make_guest(),
                check_in_date=date(2024, 7, 5),
                check_out_date=date(2024, 7, 5),
            )

    def test_guest_name_is_required(self):
        with pytest.raises(ValidationError, match="имя гостя"):
            Booking.create(
                room_id="101",
                check_in_date=date(2024, 7, 1),
                check_out_date=date(2024, 7, 2),
            )

        with pytest.raises(ValidationError):
            Booking.create(
                room_id="101",
                guest=make_guest(name="   "),
                check_in_date=date(2024, 7, 1),
                check_out_date=date(2024, 7, 2),
            )

    def test_at_least_one_adult(self):
        with pytest.raises(ValidationError):
            Booking.create(
                room_id="101",
                guest=make_guest(),
                adults=0,
                check_in_date=date(2024, 7, 1),
                check_out_date=date(2024, 7, 2),
            )

    def test_negative_amounts_rejected(self):
        with pytest.raises(ValidationError):
            Booking.create(
                room_id="101",
                guest=make_guest(),
                check_in_date=date(2024, 7, 1),
                check_out_date=date(2024, 7, 2),
                paid_amount=Decimal("-1"),
            )

    def test_block_has_no_guest(self):
        block = Booking.create(
            room_id="101",
            status=BookingStatus.BLOCKED,
            adults=0,
            check_in_date=date(2024, 7, 1),
            check_out_date=date(2024, 7, 3),
        )

        assert block.is_blocked
        assert block.label == "MAINTENANCE"

        with pytest.raises(ValidationError):
            Booking.create(
                room_id="101",
                status=BookingStatus.BLOCKED,
                guest=make_guest(),
                check_in_date=date(2024, 7, 1),
                check_out_date=date(2024, 7, 3),
            )

    @pytest.mark.parametrize("status", [BookingStatus.CHECKED_OUT, BookingStatus.CANCELLED])
    def test_cannot_create_in_final_status(self, status):
        with pytest.raises(InvalidTransitionError):
            Booking.create(
                room_id="101",
                guest=make_guest(),
                status=status,
                check_in_date=date(2024, 7, 1),
                check_out_date=date(2024, 7, 2),
            )


class TestBookingLifecycle:
    """Тесты конечного автомата статусов."""

    @pytest.mark.parametrize(
        "current, target",
        [
            (BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN),
            (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
            (BookingStatus.HOLD, BookingStatus.CONFIRMED),
            (BookingStatus.HOLD, BookingStatus.CHECKED_IN),
            (BookingStatus.HOLD, BookingStatus.CANCELLED),
            (BookingStatus.CHECKED_IN, BookingStatus.CHECKED_OUT),
            (BookingStatus.CHECKED_IN, BookingStatus.CANCELLED),
        ],
    )
    def test_allowed_transitions(self, current, target):
        assert BookingLifecycle.can_transition(current, target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (BookingStatus.CONFIRMED, BookingStatus.CHECKED_OUT),
            (BookingStatus.CHECKED_OUT, BookingStatus.CHECKED_IN),
            (BookingStatus.CANCELLED, BookingStatus.CONFIRMED),
            (BookingStatus.BLOCKED, BookingStatus.CANCELLED),
            (BookingStatus.BLOCKED, BookingStatus.CHECKED_IN),
        ],
    )
    def test_forbidden_transitions(self, current, target):
        assert not BookingLifecycle.can_transition(current, target)

    def test_checked_out_is_terminal(self):
        checked_out = booking("b1", date(2024, 7, 1), date(2024, 7, 2)).model_copy(
            update={"status": BookingStatus.CHECKED_OUT}
        )

        with pytest.raises(InvalidTransitionError):
            BookingLifecycle.ensure_transition(checked_out, BookingStatus.CHECKED_IN)

    def test_block_status_never_changes(self):
        block = booking("blk", date(2024, 7, 1), date(2024, 7, 2), status=BookingStatus.BLOCKED)

        with pytest.raises(InvalidTransitionError, match="Блокировка"):
            BookingLifecycle.ensure_transition(block, BookingStatus.CANCELLED)

    def test_finalized_bookings_are_locked(self):
        cancelled = booking("b1", date(2024, 7, 1), date(2024, 7, 2)).model_copy(
            update={"status": BookingStatus.CANCELLED}
        )

        with pytest.raises(InvalidTransitionError):
            BookingLifecycle.ensure_editable(cancelled)
        BookingLifecycle.ensure_editable(cancelled, lock_finalized=False)


class TestConflictDetector:
    """Тесты детектора пересечений."""

    def test_back_to_back_is_accepted(self):
        """Выезд 10 июня и заезд 10 июня в тот же номер не конфликтуют."""
        existing = booking("b1", date(2024, 6, 5), date(2024, 6, 10))
        detector = ConflictDetector([existing])

        result = detector.check("101", DateRange.of(date(2024, 6, 10), date(2024, 6, 12)))

        assert result.accepted
        assert result.conflicting_booking_ids == []

    def test_overlap_is_rejected(self):
        existing = booking("b1", date(2024, 6, 5), date(2024, 6, 10))
        detector = ConflictDetector([existing])

        with pytest.raises(OverlapError) as exc_info:
            detector.ensure_available("101", DateRange.of(date(2024, 6, 9), date(2024, 6, 11)))

        assert exc_info.value.conflicting_booking_ids == ["b1"]

    def test_cancelled_bookings_do_not_block(self):
        cancelled = booking("b1", date(2024, 6, 5), date(2024, 6, 10)).model_copy(
            update={"status": BookingStatus.CANCELLED}
        )
        detector = ConflictDetector([cancelled])

        assert detector.check("101", DateRange.of(date(2024, 6, 6), date(2024, 6, 8))).accepted

    def test_blocks_do_block(self):
        block = booking("blk", date(2024, 6, 5), date(2024, 6, 10), status=BookingStatus.BLOCKED)
        detector = ConflictDetector([block])

        result = detector.check("101", DateRange.of(date(2024, 6, 6), date(2024, 6, 8)))

        assert not result.accepted
        assert result.conflicting_booking_ids == ["blk"]

    def test_other_rooms_do_not_conflict(self):
        existing = booking("b1", date(2024, 6, 5), date(2024, 6, 10), room_id="102")
        detector = ConflictDetector([existing])

        assert detector.check("101", DateRange.of(date(2024, 6, 5), date(2024, 6, 10))).accepted

    def test_excluded_booking_is_ignored(self):
        """Бронь не конфликтует сама с собой при изменении дат."""
        existing = booking("b1", date(2024, 6, 5), date(2024, 6, 10))
        detector = ConflictDetector([existing])

        result = detector.check(
            "101", DateRange.of(date(2024, 6, 6), date(2024, 6, 12)), exclude_booking_id="b1"
        )

        assert result.accepted
