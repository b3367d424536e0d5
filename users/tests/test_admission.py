from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.core import mail
from django.test import TestCase

from core.datetime_utils import now_ms
from core.exceptions import InvalidInput, NotFound, PreconditionFailed
from core.models import RegistrationSettings
from teams.models import Team
from users.services import AdmissionService, verification_token

User = get_user_model()

DAY_MS = 24 * 60 * 60 * 1000


def make_user(email, **fields):
    user = User.objects.create_user(username=email, email=email, password="secret123")
    if fields:
        User.objects.filter(pk=user.pk).update(**fields)
        user.refresh_from_db()
    return user


def set_times(**fields):
    settings = RegistrationSettings.load()
    for name, value in fields.items():
        setattr(settings, name, value)
    settings.save()
    return settings


class AdmissionTestCase(TestCase):
    def setUp(self):
        now = now_ms()
        set_times(
            time_open=now - DAY_MS,
            time_close=now + DAY_MS,
            time_close_special=now + 2 * DAY_MS,
            time_confirm=now + 3 * DAY_MS,
            time_confirm_special=now + 4 * DAY_MS,
            time_tr=now + 5 * DAY_MS,
        )
        self.admin = make_user("admin@example.com", is_staff=True)
        mail.outbox = []


class RegistrationTests(AdmissionTestCase):
    def test_register_sends_verification(self):
        user = AdmissionService.register("New@Example.com", "secret123", nickname="neo")

        self.assertEqual(user.email, "new@example.com")
        self.assertFalse(user.verified)
        self.assertTrue(user.participant_id)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["new@example.com"])

    def test_duplicate_email_case_insensitive(self):
        AdmissionService.register("dup@example.com", "secret123")
        with self.assertRaises(PreconditionFailed):
            AdmissionService.register("DUP@example.com", "secret123")

    def test_participant_id_collision_is_retried(self):
        with patch("users.models.next_participant_id", side_effect=[self.admin.participant_id, "fresh-unique-id"]):
            user = AdmissionService.register("race@example.com", "secret123")
        self.assertEqual(user.participant_id, "fresh-unique-id")
        self.assertEqual(user.email, "race@example.com")

    def test_participant_id_collision_is_not_reported_as_duplicate_email(self):
        with patch("users.models.next_participant_id", return_value=self.admin.participant_id):
            with self.assertRaises(PreconditionFailed) as ctx:
                AdmissionService.register("race@example.com", "secret123")
        self.assertNotIn("already exists", str(ctx.exception.detail))
        self.assertFalse(User.objects.filter(email="race@example.com").exists())

    def test_short_password(self):
        with self.assertRaises(InvalidInput):
            AdmissionService.register("short@example.com", "12345")

    def test_registration_closed(self):
        set_times(time_close=now_ms() - 1, time_close_special=now_ms() - 1)
        with self.assertRaises(PreconditionFailed) as ctx:
            AdmissionService.register("late@example.com", "secret123")
        self.assertEqual(str(ctx.exception.detail), "Sorry, registration is closed.")

    def test_registration_not_open_yet(self):
        set_times(time_open=now_ms() + DAY_MS)
        with self.assertRaises(PreconditionFailed) as ctx:
            AdmissionService.register("early@example.com", "secret123")
        self.assertTrue(str(ctx.exception.detail).startswith("Registration opens in"))

    def test_verify_email(self):
        user = make_user("v@example.com")
        verified = AdmissionService.verify_email(verification_token(user))
        self.assertTrue(verified.verified)

    def test_resend_verification(self):
        user = make_user("u@example.com")
        AdmissionService.send_verification(user)
        self.assertEqual(len(mail.outbox), 1)

        user = make_user("v@example.com", verified=True)
        with self.assertRaises(PreconditionFailed):
            AdmissionService.send_verification(user)

    def test_verify_email_bad_token(self):
        with self.assertRaises(InvalidInput):
            AdmissionService.verify_email("not-a-token")


class ProfileTests(AdmissionTestCase):
    profile = {
        "name": "Ada Lovelace",
        "gender": "F",
        "mostInterestingTrack": "HealthTech",
        "travelFromCountry": "Finland",
        "teamSelection": "onlyTeam",
        "needsReimbursement": True,
        "appliedReimbursementClass": "Finland",
        "terminal": {"essay": "I like terminals"},
    }

    def test_unverified_user_can_not_submit(self):
        user = make_user("u@example.com")
        with self.assertRaises(PreconditionFailed):
            AdmissionService.submit_profile(user, self.profile)
        user.refresh_from_db()
        self.assertFalse(user.completed_profile)
        self.assertEqual(user.profile, {})

    def test_submit_sets_derived_fields(self):
        user = make_user("u@example.com", verified=True)
        user = AdmissionService.submit_profile(user, self.profile)

        self.assertTrue(user.completed_profile)
        self.assertTrue(user.submitted_application)
        self.assertEqual(user.gender, "F")
        self.assertEqual(user.most_interesting_track, "HealthTech")
        self.assertEqual(user.travel_from_country, "Finland")
        self.assertEqual(user.applied_reimbursement_class, "Finland")
        self.assertTrue(user.needs_reimbursement)
        self.assertEqual(user.terminal_essay, "I like terminals")
        self.assertEqual(user.name, "Ada Lovelace")

    def test_application_email_only_once(self):
        user = make_user("u@example.com", verified=True)
        AdmissionService.submit_profile(user, self.profile)
        AdmissionService.submit_profile(user, dict(self.profile, name="Ada"))
        self.assertEqual(len(mail.outbox), 1)

    def test_submit_after_close(self):
        set_times(time_close=now_ms() - 1)
        user = make_user("u@example.com", verified=True)
        with self.assertRaises(PreconditionFailed):
            AdmissionService.submit_profile(user, self.profile)

    def test_special_user_submits_after_close(self):
        set_times(time_close=now_ms() - 1)
        user = make_user("u@example.com", verified=True, special_registration=True)
        user = AdmissionService.submit_profile(user, self.profile)
        self.assertTrue(user.completed_profile)

    def test_invalid_profile_values(self):
        user = make_user("u@example.com", verified=True)
        with self.assertRaises(InvalidInput):
            AdmissionService.submit_profile(user, dict(self.profile, gender="X"))

    def test_admin_update_sends_no_email(self):
        user = make_user("u@example.com", verified=True)
        set_times(time_close=now_ms() - 1)
        user = AdmissionService.admin_update_profile(user, self.profile)
        self.assertTrue(user.completed_profile)
        self.assertEqual(len(mail.outbox), 0)


class ReviewTests(AdmissionTestCase):
    def test_soft_admit_records_admin(self):
        user = make_user("u@example.com", verified=True)
        user = AdmissionService.soft_admit(user, self.admin)
        self.assertTrue(user.soft_admitted)
        self.assertEqual(user.admitted_by, "admin@example.com")

    def test_soft_admit_refused_for_rejected(self):
        user = make_user("u@example.com", verified=True, rejected=True)
        with self.assertRaises(PreconditionFailed):
            AdmissionService.soft_admit(user, self.admin)

    def test_un_soft_admit_refused_once_admitted(self):
        user = make_user("u@example.com", verified=True, soft_admitted=True, admitted=True)
        with self.assertRaises(PreconditionFailed):
            AdmissionService.un_soft_admit(user, self.admin)

    def test_admit_requires_soft_admission(self):
        user = make_user("u@example.com", verified=True)
        with self.assertRaises(PreconditionFailed):
            AdmissionService.admit(user, self.admin)
        user.refresh_from_db()
        self.assertFalse(user.admitted)

    def test_admit_sets_deadline_and_emails(self):
        user = make_user("u@example.com", verified=True, soft_admitted=True)
        user = AdmissionService.admit(user, self.admin)

        self.assertTrue(user.admitted)
        self.assertEqual(user.confirm_by, RegistrationSettings.load().time_confirm)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, "You're in!")

    def test_admit_after_confirm_deadline_uses_special(self):
        set_times(time_confirm=now_ms() - 1)
        user = make_user("u@example.com", verified=True, soft_admitted=True)
        user = AdmissionService.admit(user, self.admin)
        self.assertEqual(user.confirm_by, RegistrationSettings.load().time_confirm_special)

    def test_admit_terminal_email_for_essay_writers(self):
        user = make_user("u@example.com", verified=True)
        AdmissionService.submit_profile(user, {"terminal": {"essay": "I want terminal"}})
        user = AdmissionService.soft_admit(user, self.admin)
        mail.outbox = []

        AdmissionService.admit(user, self.admin)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn("terminal", mail.outbox[0].subject)

    def test_admit_without_essay_gets_normal_email(self):
        user = make_user("u@example.com", verified=True, soft_admitted=True)
        AdmissionService.accept_terminal(user)
        AdmissionService.admit(user, self.admin)
        self.assertEqual(mail.outbox[-1].subject, "You're in!")

    def test_reject_and_unreject(self):
        user = make_user("u@example.com", verified=True)
        user = AdmissionService.reject(user)
        self.assertTrue(user.rejected)

        with self.assertRaises(PreconditionFailed):
            AdmissionService.reject(user)

        user = AdmissionService.unreject(user)
        self.assertFalse(user.rejected)

    def test_reject_refused_for_admitted(self):
        user = make_user("u@example.com", verified=True, soft_admitted=True, admitted=True)
        with self.assertRaises(PreconditionFailed):
            AdmissionService.reject(user)

    def test_rate(self):
        user = make_user("u@example.com")
        self.assertEqual(AdmissionService.rate(user, 5).rating, 5)
        with self.assertRaises(InvalidInput):
            AdmissionService.rate(user, 6)
        with self.assertRaises(InvalidInput):
            AdmissionService.rate(user, "lots")

    def test_travel_class_defaults_to_none(self):
        user = make_user("u@example.com", soft_admitted=True)
        user = AdmissionService.accept_travel_class(user, "")
        self.assertEqual(user.accepted_reimbursement_class, "None")

        user = AdmissionService.accept_travel_class(user, "Europe")
        self.assertEqual(user.accepted_reimbursement_class, "Europe")

    def test_travel_class_requires_soft_admission(self):
        user = make_user("u@example.com")
        with self.assertRaises(PreconditionFailed):
            AdmissionService.accept_travel_class(user, "Europe")

    def test_check_in_and_out(self):
        user = make_user("u@example.com", verified=True)
        user = AdmissionService.check_in(user)
        self.assertTrue(user.checked_in)
        self.assertIsNotNone(user.check_in_time)

        user = AdmissionService.check_out(user)
        self.assertFalse(user.checked_in)

    def test_toggle_special(self):
        user = make_user("u@example.com")
        self.assertTrue(AdmissionService.toggle_special(user).special_registration)
        self.assertFalse(AdmissionService.toggle_special(user).special_registration)

    def test_update_email(self):
        user = make_user("old@example.com")
        user = AdmissionService.update_email(user, "New@Example.com")
        self.assertEqual(user.email, "new@example.com")
        self.assertEqual(user.username, "new@example.com")

        with self.assertRaises(PreconditionFailed):
            AdmissionService.update_email(user, "ADMIN@example.com")

    def test_missing_user(self):
        with self.assertRaises(NotFound):
            AdmissionService.reject(User(pk=999999))


class ConfirmationTests(AdmissionTestCase):
    def setUp(self):
        super().setUp()
        self.user = make_user(
            "u@example.com", verified=True, soft_admitted=True, admitted=True,
            confirm_by=now_ms() + DAY_MS,
        )

    def test_confirm(self):
        user = AdmissionService.confirm(self.user, {"shirtSize": "M"})
        self.assertTrue(user.confirmed)
        self.assertEqual(user.confirmation, {"shirtSize": "M"})
        self.assertEqual(len(mail.outbox), 1)

    def test_confirm_is_idempotent(self):
        AdmissionService.confirm(self.user, {"shirtSize": "M"})
        user = AdmissionService.confirm(self.user, {"shirtSize": "L"})
        self.assertTrue(user.confirmed)
        self.assertEqual(user.confirmation["shirtSize"], "L")

    def test_confirm_after_deadline(self):
        User.objects.filter(pk=self.user.pk).update(confirm_by=now_ms() - 1)
        with self.assertRaises(PreconditionFailed) as ctx:
            AdmissionService.confirm(self.user, {})
        self.assertEqual(str(ctx.exception.detail), "You've missed the confirmation deadline.")

    def test_reconfirm_after_deadline_when_confirmed(self):
        User.objects.filter(pk=self.user.pk).update(confirmed=True, confirm_by=now_ms() - 1)
        user = AdmissionService.confirm(self.user, {"shirtSize": "S"})
        self.assertTrue(user.confirmed)

    def test_confirm_refused_when_declined(self):
        User.objects.filter(pk=self.user.pk).update(declined=True)
        with self.assertRaises(PreconditionFailed) as ctx:
            AdmissionService.confirm(self.user, {})
        self.assertEqual(
            str(ctx.exception.detail),
            "You can only confirm acceptance if you're admitted and haven't declined.",
        )

    def test_leader_confirmation_sets_team_priorities(self):
        team = Team.objects.create(leader=self.user.participant_id, members=[self.user.participant_id])
        User.objects.filter(pk=self.user.pk).update(team=team.pk)

        AdmissionService.confirm(self.user, {
            "firstPriorityTrack": "HealthTech",
            "secondPriorityTrack": "Mobility",
            "thirdPriorityTrack": "Game Jam",
        })
        team.refresh_from_db()
        self.assertEqual(team.first_priority_track, "HealthTech")
        self.assertEqual(team.third_priority_track, "Game Jam")

    def test_decline_leaves_team(self):
        other = make_user("o@example.com", verified=True)
        team = Team.objects.create(
            leader=self.user.participant_id,
            members=[self.user.participant_id, other.participant_id],
        )
        User.objects.filter(pk__in=[self.user.pk, other.pk]).update(team=team.pk)

        user = AdmissionService.decline(self.user)

        self.assertTrue(user.declined)
        self.assertFalse(user.confirmed)
        self.assertIsNone(user.team)
        team.refresh_from_db()
        self.assertEqual(team.members, [other.participant_id])
        self.assertEqual(team.leader, other.participant_id)

    def test_decline_as_sole_member_deletes_team(self):
        team = Team.objects.create(leader=self.user.participant_id, members=[self.user.participant_id])
        User.objects.filter(pk=self.user.pk).update(team=team.pk)

        user = AdmissionService.decline(self.user)

        self.assertTrue(user.declined)
        self.assertIsNone(user.team)
        self.assertFalse(Team.objects.filter(pk=team.pk).exists())

    def test_decline_twice(self):
        AdmissionService.decline(self.user)
        with self.assertRaises(PreconditionFailed):
            AdmissionService.decline(self.user)

    def test_reimbursement(self):
        user = AdmissionService.submit_reimbursement(self.user, {"iban": "FI00"})
        self.assertTrue(user.reimbursement_applied)

    def test_reimbursement_after_deadline(self):
        set_times(time_tr=now_ms() - 1)
        with self.assertRaises(PreconditionFailed) as ctx:
            AdmissionService.submit_reimbursement(self.user, {"iban": "FI00"})
        self.assertEqual(str(ctx.exception.detail), "You've missed the TR deadline.")


class BatchTests(AdmissionTestCase):
    def setUp(self):
        super().setUp()
        self.special = make_user("special@example.com", special_registration=True)
        self.admitted = make_user("admitted@example.com", verified=True, soft_admitted=True, admitted=True)
        self.soft = make_user("soft@example.com", verified=True, soft_admitted=True)
        self.finn_good = make_user("finn4@example.com", travel_from_country="Finland", rating=4)
        self.finn_weak = make_user("finn3@example.com", travel_from_country="Finland", rating=3)
        self.abroad = make_user("abroad@example.com", travel_from_country="Sweden", rating=5)

    def test_mass_reject_filter(self):
        # The admin account is neither admitted nor special, so it matches too
        self.assertEqual(AdmissionService.rejection_count(), 3)
        self.assertEqual(AdmissionService.mass_reject(), 3)

        rejected = set(User.objects.filter(rejected=True).values_list("email", flat=True))
        self.assertEqual(rejected, {"finn3@example.com", "abroad@example.com", "admin@example.com"})
        self.assertEqual(AdmissionService.rejection_count(), 0)

    def test_mass_reject_rest(self):
        User.objects.filter(pk__in=[self.finn_weak.pk, self.abroad.pk]).update(waitlist=True)
        self.assertEqual(AdmissionService.rejection_rest_count(), 5)
        self.assertEqual(AdmissionService.mass_reject_rest(), 5)

        # Only waitlisted applicants count as rejected later
        self.assertEqual(AdmissionService.later_rejection_count(), 2)
        self.assertFalse(User.objects.get(pk=self.admitted.pk).rejected)
        self.assertFalse(User.objects.get(pk=self.soft.pk).rejected)

    def test_set_on_waitlist(self):
        AdmissionService.reject(make_user("r@example.com", verified=True))
        count = AdmissionService.set_on_waitlist()
        self.assertEqual(count, 5)
        self.assertFalse(User.objects.get(email="r@example.com").waitlist)

    def test_update_confirm_by_for_all(self):
        User.objects.filter(pk=self.admitted.pk).update(waitlist=True)
        settings = RegistrationSettings.load()

        self.assertEqual(AdmissionService.update_confirm_by_for_all(True), 1)
        self.assertEqual(User.objects.get(pk=self.admitted.pk).confirm_by, settings.time_confirm_special)
        self.assertEqual(AdmissionService.update_confirm_by_for_all(False), 0)

    def test_send_reject_emails(self):
        AdmissionService.mass_reject()
        mail.outbox = []
        self.assertEqual(AdmissionService.send_reject_emails(), 3)
        self.assertEqual(len(mail.outbox), 3)

    def test_send_reject_email_requires_rejection(self):
        with self.assertRaises(PreconditionFailed):
            AdmissionService.send_reject_email(self.abroad)

    def test_send_reject_emails_rest(self):
        User.objects.filter(pk=self.abroad.pk).update(waitlist=True)
        AdmissionService.mass_reject_rest()
        mail.outbox = []

        self.assertEqual(AdmissionService.send_reject_emails_rest(), 1)
        self.assertEqual(mail.outbox[0].to, ["abroad@example.com"])

        # The general sweep reaches every rejected applicant
        self.assertEqual(AdmissionService.send_reject_emails(), 5)


class PasswordTests(AdmissionTestCase):
    def test_reset_flow(self):
        user = make_user("u@example.com")
        AdmissionService.send_password_reset("U@example.com")
        self.assertEqual(len(mail.outbox), 1)

        token = default_token_generator.make_token(user)
        AdmissionService.reset_password(user.pk, token, "new-secret")
        user.refresh_from_db()
        self.assertTrue(user.check_password("new-secret"))
        self.assertEqual(mail.outbox[-1].subject, "Your password was changed")

    def test_reset_with_bad_token(self):
        user = make_user("u@example.com")
        with self.assertRaises(InvalidInput):
            AdmissionService.reset_password(user.pk, "bad-token", "new-secret")

    def test_unknown_email_is_silent(self):
        AdmissionService.send_password_reset("nobody@example.com")
        self.assertEqual(len(mail.outbox), 0)

    def test_admin_change_password(self):
        user = make_user("u@example.com")
        AdmissionService.admin_change_password(user, "changed1")
        user.refresh_from_db()
        self.assertTrue(user.check_password("changed1"))


class AdmissionFlowTests(AdmissionTestCase):
    def test_register_to_confirmed(self):
        user = AdmissionService.register("flow@example.com", "secret123", nickname="flow")
        user = AdmissionService.verify_email(verification_token(user))
        user = AdmissionService.submit_profile(user, {"mostInterestingTrack": "HealthTech"})
        user = AdmissionService.soft_admit(user, self.admin)
        user = AdmissionService.admit(user, self.admin)
        user = AdmissionService.confirm(user, {"shirtSize": "M"})

        user = User.objects.get(pk=user.pk)
        self.assertTrue(user.verified)
        self.assertTrue(user.completed_profile)
        self.assertTrue(user.submitted_application)
        self.assertTrue(user.soft_admitted)
        self.assertTrue(user.admitted)
        self.assertTrue(user.confirmed)
        self.assertFalse(user.rejected)
        self.assertFalse(user.declined)
        self.assertFalse(user.waitlist)
        self.assertEqual(user.admitted_by, "admin@example.com")
        self.assertEqual(user.confirm_by, RegistrationSettings.load().time_confirm)
        self.assertEqual(user.confirmation, {"shirtSize": "M"})
        self.assertEqual(
            [m.subject for m in mail.outbox],
            ["Verify your email", "We received your application", "You're in!", "Your spot is confirmed"],
        )
