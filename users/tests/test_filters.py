from django.contrib.auth import get_user_model
from django.http import QueryDict
from django.test import TestCase

from core.exceptions import InvalidInput
from users.filters import UserQuery

User = get_user_model()


def make_user(email, **fields):
    user = User.objects.create_user(username=email, email=email, password="secret123")
    if fields:
        User.objects.filter(pk=user.pk).update(**fields)
        user.refresh_from_db()
    return user


def search(query_string):
    query = UserQuery.from_params(QueryDict(query_string))
    return set(query.apply(User.objects.all()).values_list("email", flat=True))


class UserQueryTests(TestCase):
    def setUp(self):
        make_user("ada@aalto.fi", nickname="ada", verified=True, completed_profile=True,
                  profile={"name": "Ada Lovelace", "school": "Aalto"}, rating=5)
        make_user("grace@example.com", nickname="grace", verified=True, completed_profile=True,
                  soft_admitted=True, admitted=True, rating=3)
        make_user("linus@example.com", nickname="linus", verified=True, rejected=True)

    def test_no_filters_returns_everyone(self):
        self.assertEqual(len(search("")), 3)

    def test_text_is_or_over_columns(self):
        # matches the email of one user and the nickname of another
        self.assertEqual(search("text=aalto"), {"ada@aalto.fi"})
        self.assertEqual(search("text=GRACE"), {"grace@example.com"})
        self.assertEqual(search("text=lovelace"), {"ada@aalto.fi"})

    def test_status_filters_are_and(self):
        self.assertEqual(search("admitted=true"), {"grace@example.com"})
        self.assertEqual(search("rejected=true"), {"linus@example.com"})
        self.assertEqual(search("submitted=true"), {"ada@aalto.fi"})
        self.assertEqual(search("admitted=true&rejected=true"), set())

    def test_text_and_status_combine(self):
        self.assertEqual(search("text=example&rejected=true"), {"linus@example.com"})

    def test_rated_stars(self):
        self.assertEqual(search("rated_stars=5"), {"ada@aalto.fi"})
        self.assertEqual(search("rated=true"), {"ada@aalto.fi", "grace@example.com"})

    def test_sorting(self):
        query = UserQuery.from_params(QueryDict("sort_by=rating&sort_desc=true"))
        emails = list(query.apply(User.objects.all()).values_list("email", flat=True))
        self.assertEqual(emails[0], "ada@aalto.fi")

    def test_invalid_params(self):
        with self.assertRaises(InvalidInput):
            UserQuery.from_params(QueryDict("sort_by=password"))
        with self.assertRaises(InvalidInput):
            UserQuery.from_params(QueryDict("size=0"))
        with self.assertRaises(InvalidInput):
            UserQuery.from_params(QueryDict("page=abc"))
