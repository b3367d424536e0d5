# core/models.py
from django.db import models

from .datetime_utils import now_ms

ONE_YEAR_MS = 31104000000
ONE_WEEK_MS = 604800000


def _a_year_from_now():
    return now_ms() + ONE_YEAR_MS


class RegistrationSettings(models.Model):
    """
    Singleton row holding the registration windows and event-wide texts.

    All timestamps are epoch milliseconds so they can be compared directly
    with User.confirm_by and handed to the frontend unchanged.
    """
    time_open = models.BigIntegerField(default=0)
    time_close = models.BigIntegerField(default=_a_year_from_now)
    time_close_special = models.BigIntegerField(default=_a_year_from_now)
    time_confirm = models.BigIntegerField(default=ONE_WEEK_MS)
    time_confirm_special = models.BigIntegerField(default=ONE_WEEK_MS)
    time_tr = models.BigIntegerField(default=_a_year_from_now, help_text="Travel reimbursement deadline")

    waitlist_text = models.TextField(blank=True, default="")
    acceptance_text = models.TextField(blank=True, default="")
    confirmation_text = models.TextField(blank=True, default="")
    show_rejection = models.BooleanField(default=False)

    # Reimbursement amount (EUR) per accepted travel class
    reimbursement_finland = models.PositiveIntegerField(default=20)
    reimbursement_baltics = models.PositiveIntegerField(default=40)
    reimbursement_nordics = models.PositiveIntegerField(default=60)
    reimbursement_europe = models.PositiveIntegerField(default=80)
    reimbursement_rest_of_the_world = models.PositiveIntegerField(default=150)
    reimbursement_golden_ticket = models.PositiveIntegerField(default=200)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "registration settings"
        verbose_name_plural = "registration settings"

    def __str__(self):
        return "Registration settings"

    @classmethod
    def load(cls):
        obj, _ = cls.objects.get_or_create(pk=1)
        return obj

    @classmethod
    def get_registration_times(cls):
        """
        Get the open and close times for registration.

        Returns a dict keyed like the public API:
        timeOpen, timeClose, timeCloseSpecial, timeConfirm, timeConfirmSpecial, timeTR
        """
        s = cls.load()
        return {
            "timeOpen": s.time_open,
            "timeClose": s.time_close,
            "timeCloseSpecial": s.time_close_special,
            "timeConfirm": s.time_confirm,
            "timeConfirmSpecial": s.time_confirm_special,
            "timeTR": s.time_tr,
        }

    def reimbursement_amounts(self):
        """Map of accepted travel class -> reimbursed amount."""
        return {
            "Finland": self.reimbursement_finland,
            "Baltics": self.reimbursement_baltics,
            "Nordics": self.reimbursement_nordics,
            "Europe": self.reimbursement_europe,
            "RestOfTheWorld": self.reimbursement_rest_of_the_world,
            "GoldenTicket": self.reimbursement_golden_ticket,
        }
