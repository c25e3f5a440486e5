import os
import random
import sys

import django
from faker import Faker

# Add project root to Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set up Django environment
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'skillswap.settings')
django.setup()

from marketplace import services  # noqa: E402
from marketplace.exceptions import SwapError  # noqa: E402
from marketplace.models import Skill, User  # noqa: E402
from marketplace.validators import SKILL_LEVELS  # noqa: E402

fake = Faker()

SKILL_NAMES = [
    "Guitar", "Painting", "Python", "Spanish", "Photography", "Cooking",
    "Yoga", "Piano", "Woodworking", "Public Speaking", "Chess", "Knitting",
    "Video Editing", "Gardening", "French", "Calligraphy",
]

AVAILABILITY = [choice for choice, _label in User.AVAILABILITY_CHOICES]


def create_users(num_users=20):
    print(f"Creating {num_users} users...")
    users = []

    for _ in range(num_users):
        email = fake.unique.email().lower()
        user = User.objects.create_user(
            username=email,
            email=email,
            password='password123',
            name=fake.name()[:50],
            location=fake.city(),
            availability=random.choice(AVAILABILITY),
            is_profile_public=random.random() < 0.9,
        )
        users.append(user)

    print(f"Created {len(users)} users.")
    return users


def create_skills(users):
    print("Creating skills...")
    count = 0

    for user in users:
        offered = random.sample(SKILL_NAMES, random.randint(1, 3))
        remaining = [name for name in SKILL_NAMES if name not in offered]
        wanted = random.sample(remaining, random.randint(1, 3))

        for side, names in ((Skill.SIDE_OFFERED, offered), (Skill.SIDE_WANTED, wanted)):
            for name in names:
                services.add_skill(
                    user,
                    side,
                    name,
                    fake.sentence(nb_words=10)[:500],
                    level=random.choice(SKILL_LEVELS),
                )
                count += 1

    print(f"Created {count} skills.")


def create_swaps(users, num_swaps=40):
    print("Creating swap requests...")
    swaps = []

    for _ in range(num_swaps):
        requester, recipient = random.sample(users, 2)
        requested = recipient.offered_skills().order_by('?').first()
        offered = requester.offered_skills().order_by('?').first()
        if requested is None or offered is None:
            continue

        try:
            swap = services.create_swap_request(
                requester,
                recipient.id,
                requested.name,
                offered.name,
                message=fake.sentence(),
            )
        except SwapError:
            # A pending request already exists for this pair
            continue

        roll = random.random()
        if roll < 0.5:
            services.accept_swap_request(swap.id, recipient)
            if random.random() < 0.8:
                swap = services.complete_swap_request(swap.id, random.choice([requester, recipient]))
        elif roll < 0.65:
            swap = services.reject_swap_request(swap.id, recipient)
        elif roll < 0.75:
            swap = services.cancel_swap_request(swap.id, requester)

        swaps.append(swap)

    print(f"Created {len(swaps)} swap requests.")
    return swaps


def create_ratings(swaps):
    print("Creating ratings...")
    count = 0

    for swap in swaps:
        if swap.status != 'completed':
            continue
        for rater in (swap.requester, swap.recipient):
            # 70% chance of leaving a rating
            if random.random() < 0.7:
                services.submit_rating(
                    swap.id,
                    rater,
                    random.randint(3, 5),
                    comment=fake.sentence(),
                )
                count += 1

    print(f"Created {count} ratings.")


def main():
    print("Starting database population...")

    users = create_users(num_users=20)
    create_skills(users)
    swaps = create_swaps(users)
    create_ratings(swaps)

    print("Database population completed successfully!")


if __name__ == '__main__':
    main()
