from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone

from activities.models import Activity

User = get_user_model()


def make_user(username, **extra):
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="pass12345",
        **extra,
    )


def make_activity(creator, **overrides):
    fields = {
        "title": "Saturday hike",
        "description": "Meet at the station.",
        "start_time": timezone.now() + timedelta(days=3),
        "points_participant": 5,
        "points_creator": 10,
        "max_participants": 0,
    }
    fields.update(overrides)
    return Activity.objects.create(creator=creator, **fields)
