from django.contrib.auth import get_user_model
from django.core import mail

from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from core.datetime_utils import now_ms
from teams.models import Team

User = get_user_model()

DAY_MS = 24 * 60 * 60 * 1000


class UserApiTests(APITestCase):
    def setUp(self):
        self.client = APIClient()

        self.admin = User.objects.create_user(
            username="admin@example.com",
            email="admin@example.com",
            password="pass1234",
            is_staff=True,
        )
        self.participant = User.objects.create_user(
            username="p@example.com",
            email="p@example.com",
            password="pass1234",
            verified=True,
        )

    def test_me(self):
        self.client.force_authenticate(user=self.participant)
        resp = self.client.get("/api/users/me/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertEqual(resp.data["participant_id"], self.participant.participant_id)
        self.assertNotIn("rating", resp.data)

    def test_submit_profile(self):
        self.client.force_authenticate(user=self.participant)
        resp = self.client.put(
            "/api/users/me/profile/",
            {"profile": {"name": "Pat", "gender": "N"}},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertTrue(resp.data["completed_profile"])
        self.assertEqual(len(mail.outbox), 1)

    def test_refused_transition_error_format(self):
        self.client.force_authenticate(user=self.participant)
        resp = self.client.post("/api/users/me/decline/")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST, resp.content)
        self.assertFalse(resp.data["success"])
        self.assertEqual(resp.data["status_code"], 400)
        self.assertEqual(
            resp.data["errors"]["detail"],
            "You can only decline if you're admitted and haven't declined already.",
        )

    def test_admin_endpoints_need_staff(self):
        self.client.force_authenticate(user=self.participant)
        resp = self.client.get("/api/users/")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN, resp.content)

        resp = self.client.post(f"/api/users/{self.participant.pk}/soft-admit/")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN, resp.content)

    def test_admin_list_with_team_locked(self):
        team = Team.objects.create(
            leader=self.participant.participant_id,
            members=[self.participant.participant_id],
            team_locked=True,
        )
        User.objects.filter(pk=self.participant.pk).update(team=team.pk)

        self.client.force_authenticate(user=self.admin)
        resp = self.client.get("/api/users/", {"text": "p@example", "size": 10})

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertEqual(resp.data["count"], 1)
        self.assertEqual(resp.data["total_pages"], 1)
        self.assertTrue(resp.data["users"][0]["team_locked"])

    def test_admin_soft_admit_and_admit(self):
        from core.models import RegistrationSettings

        settings = RegistrationSettings.load()
        settings.time_confirm = now_ms() + DAY_MS
        settings.save()

        self.client.force_authenticate(user=self.admin)
        resp = self.client.post(f"/api/users/{self.participant.pk}/soft-admit/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertTrue(resp.data["soft_admitted"])
        self.assertEqual(resp.data["admitted_by"], "admin@example.com")
        self.assertFalse(resp.data["team_locked"])

        resp = self.client.post(f"/api/users/{self.participant.pk}/admit/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertTrue(resp.data["admitted"])
        self.assertEqual(resp.data["confirm_by"], settings.time_confirm)

    def test_admin_rate_validation(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.post(f"/api/users/{self.participant.pk}/rate/", {"rating": 9}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST, resp.content)
        self.assertFalse(resp.data["success"])

    def test_unknown_user_is_404(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.post("/api/users/999999/reject/")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND, resp.content)
        self.assertEqual(resp.data["errors"]["detail"], "User not found.")

    def test_mass_reject(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.get("/api/users/mass/counts/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertEqual(resp.data["rejection_count"], 2)

        resp = self.client.post("/api/users/mass/reject/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertEqual(resp.data["count"], 2)

    def test_stats_empty_before_refresh(self):
        from django.core.cache import cache

        cache.clear()
        self.client.force_authenticate(user=self.admin)
        resp = self.client.get("/api/users/stats/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertEqual(resp.data, {})
