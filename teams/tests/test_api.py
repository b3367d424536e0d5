from unittest.mock import patch

from django.contrib.auth import get_user_model

from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from teams.models import Team

User = get_user_model()


class TeamApiTests(APITestCase):
    def setUp(self):
        self.client = APIClient()

        self.admin = User.objects.create_user(
            username="admin@example.com",
            email="admin@example.com",
            password="pass1234",
            is_staff=True,
        )
        self.leader = User.objects.create_user(
            username="leader@example.com",
            email="leader@example.com",
            password="pass1234",
            verified=True,
        )
        self.member = User.objects.create_user(
            username="member@example.com",
            email="member@example.com",
            password="pass1234",
            verified=True,
        )

    def create_team(self):
        self.client.force_authenticate(user=self.leader)
        resp = self.client.post("/api/teams/create/")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.content)
        return resp.data["code"]

    def test_requires_authentication(self):
        resp = self.client.post("/api/teams/create/")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_join_and_view(self):
        code = self.create_team()

        self.client.force_authenticate(user=self.member)
        resp = self.client.post("/api/teams/join/", {"code": code}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertEqual(resp.data["size"], 2)

        resp = self.client.get("/api/teams/mine/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [t["participant_id"] for t in resp.data["teammates"]],
            [self.leader.participant_id, self.member.participant_id],
        )

    def test_join_unknown_team(self):
        self.client.force_authenticate(user=self.member)
        resp = self.client.post(
            "/api/teams/join/", {"code": "00000000-0000-0000-0000-000000000000"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(resp.data["success"])
        self.assertEqual(resp.data["errors"]["detail"], "Team not found")

    def test_leave(self):
        self.create_team()
        resp = self.client.post("/api/teams/leave/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertFalse(Team.objects.exists())

    def test_lock_by_member_is_refused(self):
        code = self.create_team()
        self.client.force_authenticate(user=self.member)
        self.client.post("/api/teams/join/", {"code": code}, format="json")

        resp = self.client.post("/api/teams/lock/", {"track_interests": ["AI"]}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["errors"]["detail"], "Only team leader can lock in the team")

    @patch("teams.services.get_gavel_client")
    def test_gavel_token_failure_is_bad_gateway(self, get_client):
        from teams.gavel import GavelError

        get_client.return_value.create_team.side_effect = GavelError("down")
        self.create_team()
        resp = self.client.post("/api/teams/gavel-token/")
        self.assertEqual(resp.status_code, status.HTTP_502_BAD_GATEWAY)

    def test_admin_list_and_assign_track(self):
        code = self.create_team()

        resp = self.client.get("/api/teams/")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.admin)
        resp = self.client.post(f"/api/teams/{code}/assign-track/", {"track": "HealthTech"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertEqual(resp.data["assigned_track"], "HealthTech")

        resp = self.client.get("/api/teams/", {"assigned_track": "HealthTech"})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(len(resp.data), 1)
        self.assertEqual(resp.data[0]["revision"], 1)

    def test_matchmaking_flow(self):
        self.client.force_authenticate(user=self.member)
        resp = self.client.put(
            "/api/teams/matchmaking/profile/",
            {"enrollment_type": "individual", "profile": {"role": "Designer"}},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)

        resp = self.client.get("/api/teams/matchmaking/", {"type": "individuals"})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["results"], [{"role": "Designer"}])

        resp = self.client.get("/api/teams/matchmaking/", {"type": "individuals", "page": "x"})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
