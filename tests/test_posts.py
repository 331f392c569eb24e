"""
Tests for post endpoints: creation, deletion, comments, votes, images,
challenges and crawl stops.
"""
import json
import uuid
from pathlib import Path

import pytest
from sqlalchemy import select

from conftest import auth
from tripboard.application.posts import post_service
from tripboard.auth.service import derive_user_id
from tripboard.infrastructure.models import (
    CrawlLocationChallengeModel,
    FeedCommentModel,
    FeedPostChallengeModel,
    FeedPostImageModel,
    FeedPostModel,
)


PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def image(name="photo.png", content=PNG, content_type="image/png"):
    return ("images", (name, content, content_type))


def stored_files(services):
    directory = Path(services.upload_store.directory)
    return sorted(directory.iterdir()) if directory.exists() else []


@pytest.fixture
async def trip(create_trip, join_trip):
    """Alice's trip with Bob as a member. Carol stays outside."""
    trip = await create_trip("alice-token")
    await join_trip(trip["joinCode"], "bob-token")
    return trip


@pytest.fixture
def crawl_post(client, trip, create_post):
    async def _create(count=3):
        locations = [
            {"locationName": f"Bar {n}", "latitude": 38.71 + n / 100, "longitude": -9.14}
            for n in range(count)
        ]
        response = await create_post(
            trip["id"],
            postType="CRAWL",
            title="Bairro Alto crawl",
            fromTime="20:00",
            toTime="23:30",
            dayNumber=1,
            crawlLocations=json.dumps(locations),
        )
        assert response.status_code == 201, response.text
        return response.json()["post"]

    return _create


# -----------------------------------------------------------------------------
# Creation
# -----------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_suggestion(client, trip, create_post):
    """Test a suggestion with a location is returned in the post view."""
    response = await create_post(
        trip["id"],
        title="Pastéis de Belém",
        body="Go early",
        locationName="Belém",
        latitude="38.6975",
        longitude="-9.2032",
    )

    assert response.status_code == 201
    post = response.json()["post"]
    assert post["postType"] == "SUGGESTION"
    assert post["title"] == "Pastéis de Belém"
    assert post["latitude"] == 38.6975
    assert post["longitude"] == -9.2032
    assert post["dayNumber"] is None
    assert post["authorName"] == "Alice"
    assert post["voteCount"] == 0
    assert post["hasVoted"] is False
    assert post["comments"] == []
    assert post["crawlLocations"] == []


@pytest.mark.asyncio
async def test_create_event(client, trip, create_post):
    response = await create_post(
        trip["id"],
        postType="EVENT",
        dayNumber=2,
        eventName="Fado night",
        fromTime="21:00",
        toTime="23:00",
    )

    assert response.status_code == 201
    post = response.json()["post"]
    assert post["postType"] == "EVENT"
    assert post["dayNumber"] == 2
    assert post["fromTime"] == "21:00"
    assert post["toTime"] == "23:00"


@pytest.mark.asyncio
async def test_create_event_missing_to_time(client, trip, create_post):
    response = await create_post(trip["id"], postType="EVENT", dayNumber=1, eventName="Fado", fromTime="21:00")

    assert response.status_code == 400
    assert response.json() == {"error": "Event post needs event name, from time, and to time."}


@pytest.mark.asyncio
async def test_create_post_unknown_day(client, trip, create_post):
    """Test a day outside the trip's day rows is a 404."""
    response = await create_post(trip["id"], title="Later", dayNumber=5)

    assert response.status_code == 404
    assert response.json() == {"error": "Selected day not found in trip."}


@pytest.mark.asyncio
async def test_create_post_requires_membership(client, trip, create_post, join_trip):
    """Test outsiders are refused until they join."""
    response = await create_post(trip["id"], token="carol-token", title="Hi")

    assert response.status_code == 403
    assert response.json() == {"error": "Join this trip before posting."}

    await join_trip(trip["joinCode"], "carol-token")
    response = await create_post(trip["id"], token="carol-token", title="Hi")
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_create_crawl(client, trip, crawl_post):
    """Test crawl stops are stored in order and the first stop is the post location."""
    post = await crawl_post(3)

    assert post["postType"] == "CRAWL"
    assert [stop["locationName"] for stop in post["crawlLocations"]] == ["Bar 0", "Bar 1", "Bar 2"]
    assert [stop["sortOrder"] for stop in post["crawlLocations"]] == [0, 1, 2]
    assert all(stop["isCompleted"] is False for stop in post["crawlLocations"])
    assert post["locationName"] == "Bar 0"
    assert post["latitude"] == 38.71


@pytest.mark.asyncio
async def test_create_post_with_images(client, services, trip, create_post):
    response = await create_post(trip["id"], files=[image("a.png"), image("b.jpg", content_type="image/jpeg")])

    assert response.status_code == 201
    images = response.json()["post"]["images"]
    assert len(images) == 2
    assert all(url.startswith("/uploads/") for url in images)
    assert images[1].endswith(".jpg")
    assert len(stored_files(services)) == 2


@pytest.mark.asyncio
async def test_create_post_rejects_non_images(client, services, trip, create_post):
    response = await create_post(trip["id"], title="Doc", files=[image("notes.txt", b"hello", "text/plain")])

    assert response.status_code == 400
    assert response.json() == {"error": "Only image uploads are allowed."}
    assert stored_files(services) == []


@pytest.mark.asyncio
async def test_create_post_rejects_large_images(client, services, trip, create_post):
    too_big = b"\x00" * (services.upload_store.max_file_size + 1)
    response = await create_post(trip["id"], title="Big", files=[image("big.png", too_big)])

    assert response.status_code == 400
    assert response.json() == {"error": "Each image must be 2MB or smaller."}
    assert stored_files(services) == []


@pytest.mark.asyncio
async def test_create_post_too_many_images(client, trip, create_post):
    response = await create_post(trip["id"], files=[image(f"{n}.png") for n in range(7)])

    assert response.status_code == 400
    assert response.json() == {"error": "You can upload up to 6 images per post."}


@pytest.mark.asyncio
async def test_failed_write_removes_uploaded_files(client, services, trip, create_post, monkeypatch):
    """Test files written before a failing database write are cleaned up."""

    async def broken_touch(db, post_id):
        raise RuntimeError("write failed")

    first = await create_post(trip["id"], title="Gallery")
    post_id = first.json()["post"]["id"]

    monkeypatch.setattr(post_service, "_touch_post", broken_touch)
    with pytest.raises(RuntimeError):
        await client.post(
            f"/api/posts/{post_id}/images",
            files=[image("a.png")],
            headers=auth("alice-token"),
        )

    assert stored_files(services) == []


# -----------------------------------------------------------------------------
# Deletion
# -----------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_post_by_author_and_owner(client, db, trip, create_post):
    bob_post = (await create_post(trip["id"], token="bob-token", title="Bob's")).json()["post"]
    other = (await create_post(trip["id"], token="bob-token", title="Another")).json()["post"]

    response = await client.delete(f"/api/posts/{bob_post['id']}", headers=auth("bob-token"))
    assert response.status_code == 200

    # Trip owner may delete anyone's post
    response = await client.delete(f"/api/posts/{other['id']}", headers=auth("alice-token"))
    assert response.status_code == 200

    stored = await db.get(FeedPostModel, uuid.UUID(bob_post["id"]))
    assert stored.is_deleted is True

    response = await client.delete(f"/api/posts/{bob_post['id']}", headers=auth("bob-token"))
    assert response.status_code == 404

    trip_view = await client.get(f"/api/trips/{trip['id']}", headers=auth("alice-token"))
    assert trip_view.json()["trip"]["posts"] == []


@pytest.mark.asyncio
async def test_delete_post_forbidden_for_other_members(client, trip, create_post):
    post = (await create_post(trip["id"], title="Alice's")).json()["post"]

    response = await client.delete(f"/api/posts/{post['id']}", headers=auth("bob-token"))

    assert response.status_code == 403
    assert response.json() == {"error": "You are not allowed to delete this post."}


@pytest.mark.asyncio
async def test_archived_trip_content_cannot_be_deleted(client, db, trip, create_post, crawl_post):
    """Test former members cannot delete posts, comments or challenges once the trip is archived."""
    post = (await create_post(trip["id"], token="bob-token", title="Bob's")).json()["post"]
    comment = (
        await client.post(
            f"/api/posts/{post['id']}/comments",
            json={"commentBody": "Keep this"},
            headers=auth("bob-token"),
        )
    ).json()["comment"]
    challenge = (
        await client.post(
            f"/api/posts/{post['id']}/challenges",
            json={"challengeText": "Sunset at Adamastor"},
            headers=auth("bob-token"),
        )
    ).json()["challenge"]
    crawl = await crawl_post(1)
    stop_base = f"/api/posts/{crawl['id']}/crawl-locations/{crawl['crawlLocations'][0]['id']}/challenges"
    stop_challenge = (
        await client.post(stop_base, json={"challengeText": "Ginjinha"}, headers=auth("alice-token"))
    ).json()["challenge"]

    response = await client.delete(f"/api/trips/{trip['id']}", headers=auth("alice-token"))
    assert response.status_code == 200

    response = await client.delete(
        f"/api/posts/{post['id']}/challenges/{challenge['id']}",
        headers=auth("bob-token"),
    )
    assert response.status_code == 403
    assert response.json() == {"error": "Join this trip before updating challenges."}

    response = await client.delete(f"{stop_base}/{stop_challenge['id']}", headers=auth("alice-token"))
    assert response.status_code == 403
    assert response.json() == {"error": "Join this trip before updating crawl location challenges."}

    response = await client.delete(
        f"/api/posts/{post['id']}/comments/{comment['id']}",
        headers=auth("bob-token"),
    )
    assert response.status_code == 403
    assert response.json() == {"error": "You are not allowed to delete this comment."}

    for token in ("bob-token", "alice-token"):
        response = await client.delete(f"/api/posts/{post['id']}", headers=auth(token))
        assert response.status_code == 403
        assert response.json() == {"error": "You are not allowed to delete this post."}

    assert (await db.get(FeedPostModel, uuid.UUID(post["id"]))).is_deleted is False
    assert (await db.get(FeedCommentModel, uuid.UUID(comment["id"]))).is_deleted is False
    assert await db.get(FeedPostChallengeModel, uuid.UUID(challenge["id"])) is not None
    assert await db.get(CrawlLocationChallengeModel, uuid.UUID(stop_challenge["id"])) is not None


# -----------------------------------------------------------------------------
# Comments
# -----------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_add_and_delete_comment(client, db, trip, create_post):
    post = (await create_post(trip["id"], title="Dinner?")).json()["post"]

    response = await client.post(
        f"/api/posts/{post['id']}/comments",
        json={"commentBody": "  Yes please  "},
        headers=auth("bob-token"),
    )
    assert response.status_code == 201
    comment = response.json()["comment"]
    assert comment["commentBody"] == "Yes please"
    assert comment["authorName"] == "Bob"

    response = await client.delete(
        f"/api/posts/{post['id']}/comments/{comment['id']}",
        headers=auth("bob-token"),
    )
    assert response.status_code == 200

    stored = await db.get(FeedCommentModel, uuid.UUID(comment["id"]))
    assert stored.is_deleted is True

    response = await client.delete(
        f"/api/posts/{post['id']}/comments/{comment['id']}",
        headers=auth("bob-token"),
    )
    assert response.status_code == 404
    assert response.json() == {"error": "Comment not found."}


@pytest.mark.asyncio
async def test_delete_comment_permissions(client, trip, create_post, join_trip):
    post = (await create_post(trip["id"], title="Dinner?")).json()["post"]
    await join_trip(trip["joinCode"], "carol-token")

    response = await client.post(
        f"/api/posts/{post['id']}/comments",
        json={"commentBody": "Bob here"},
        headers=auth("bob-token"),
    )
    comment_id = response.json()["comment"]["id"]

    response = await client.delete(f"/api/posts/{post['id']}/comments/{comment_id}", headers=auth("carol-token"))
    assert response.status_code == 403
    assert response.json() == {"error": "You are not allowed to delete this comment."}

    response = await client.delete(f"/api/posts/{post['id']}/comments/{comment_id}", headers=auth("alice-token"))
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_blank_comment(client, trip, create_post):
    post = (await create_post(trip["id"], title="Dinner?")).json()["post"]

    response = await client.post(
        f"/api/posts/{post['id']}/comments",
        json={"commentBody": "   "},
        headers=auth("alice-token"),
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Comment body is required."}


@pytest.mark.asyncio
async def test_comment_requires_membership(client, trip, create_post, join_trip):
    """Test outsiders can comment once they join."""
    post = (await create_post(trip["id"], title="Dinner?")).json()["post"]
    url = f"/api/posts/{post['id']}/comments"

    response = await client.post(url, json={"commentBody": "Hi"}, headers=auth("carol-token"))
    assert response.status_code == 403
    assert response.json() == {"error": "Join this trip before commenting."}

    await join_trip(trip["joinCode"], "carol-token")
    response = await client.post(url, json={"commentBody": "Hi"}, headers=auth("carol-token"))
    assert response.status_code == 201
    assert response.json()["comment"]["authorName"] == "Carol"


# -----------------------------------------------------------------------------
# Votes
# -----------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_vote_is_idempotent(client, trip, create_post):
    post = (await create_post(trip["id"], title="Sintra day trip")).json()["post"]

    first = await client.post(f"/api/posts/{post['id']}/votes", headers=auth("bob-token"))
    second = await client.post(f"/api/posts/{post['id']}/votes", headers=auth("bob-token"))

    assert first.status_code == 200
    assert second.json() == {"voteCount": 1, "hasVoted": True, "voterDisplayNames": ["Bob"]}


@pytest.mark.asyncio
async def test_votes_from_two_members(client, trip, create_post):
    post = (await create_post(trip["id"], title="Sintra day trip")).json()["post"]

    await client.post(f"/api/posts/{post['id']}/votes", headers=auth("bob-token"))
    response = await client.post(f"/api/posts/{post['id']}/votes", headers=auth("alice-token"))

    assert response.json() == {"voteCount": 2, "hasVoted": True, "voterDisplayNames": ["Bob", "Alice"]}

    trip_view = await client.get(f"/api/trips/{trip['id']}", headers=auth("bob-token"))
    feed_post = trip_view.json()["trip"]["posts"][0]
    assert feed_post["voteCount"] == 2
    assert feed_post["hasVoted"] is True


@pytest.mark.asyncio
async def test_vote_requires_membership(client, trip, create_post, join_trip):
    """Test outsiders can vote once they join."""
    post = (await create_post(trip["id"], title="Sintra day trip")).json()["post"]

    response = await client.post(f"/api/posts/{post['id']}/votes", headers=auth("carol-token"))
    assert response.status_code == 403
    assert response.json() == {"error": "Join this trip before voting."}

    await join_trip(trip["joinCode"], "carol-token")
    response = await client.post(f"/api/posts/{post['id']}/votes", headers=auth("carol-token"))
    assert response.status_code == 200
    assert response.json() == {"voteCount": 1, "hasVoted": True, "voterDisplayNames": ["Carol"]}


# -----------------------------------------------------------------------------
# Images
# -----------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_add_images_to_post(client, db, services, trip, create_post):
    post = (await create_post(trip["id"], title="Gallery", files=[image("a.png")])).json()["post"]

    response = await client.post(
        f"/api/posts/{post['id']}/images",
        files=[image("b.png"), image("c.png")],
        headers=auth("bob-token"),
    )

    assert response.status_code == 201
    assert len(response.json()["post"]["images"]) == 3

    result = await db.execute(
        select(FeedPostImageModel.sort_order)
        .where(FeedPostImageModel.feed_post_id == uuid.UUID(post["id"]))
        .order_by(FeedPostImageModel.sort_order)
    )
    assert result.scalars().all() == [0, 1, 2]


@pytest.mark.asyncio
async def test_add_images_total_limit(client, services, trip, create_post):
    post = (await create_post(trip["id"], title="Gallery", files=[image(f"{n}.png") for n in range(5)])).json()["post"]

    response = await client.post(
        f"/api/posts/{post['id']}/images",
        files=[image("x.png"), image("y.png")],
        headers=auth("alice-token"),
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Each post can include up to 6 images total."}
    assert len(stored_files(services)) == 5


@pytest.mark.asyncio
async def test_add_images_requires_files(client, trip, create_post):
    post = (await create_post(trip["id"], title="Gallery")).json()["post"]

    response = await client.post(f"/api/posts/{post['id']}/images", headers=auth("alice-token"))

    assert response.status_code == 400
    assert response.json() == {"error": "Select at least one image to upload."}


# -----------------------------------------------------------------------------
# Challenges
# -----------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_challenge_lifecycle(client, trip, create_post):
    post = (await create_post(trip["id"], title="Beach day")).json()["post"]
    bob_id = str(derive_user_id("auth0|bob"))

    response = await client.post(
        f"/api/posts/{post['id']}/challenges",
        json={"challengeText": "Swim before 9", "taggedUserId": bob_id},
        headers=auth("alice-token"),
    )
    assert response.status_code == 201
    challenge = response.json()["challenge"]
    assert challenge["taggedUserId"] == bob_id
    assert challenge["taggedDisplayName"] == "Bob"
    assert challenge["isCompleted"] is False
    assert challenge["completedByUserId"] is None

    response = await client.patch(
        f"/api/posts/{post['id']}/challenges/{challenge['id']}/toggle",
        headers=auth("bob-token"),
    )
    toggled = response.json()["challenge"]
    assert toggled["isCompleted"] is True
    assert toggled["completedByUserId"] == bob_id
    assert toggled["completedByDisplayName"] == "Bob"

    response = await client.patch(
        f"/api/posts/{post['id']}/challenges/{challenge['id']}/toggle",
        headers=auth("alice-token"),
    )
    untoggled = response.json()["challenge"]
    assert untoggled["isCompleted"] is False
    assert untoggled["completedByUserId"] is None

    response = await client.delete(
        f"/api/posts/{post['id']}/challenges/{challenge['id']}",
        headers=auth("bob-token"),
    )
    assert response.status_code == 403
    assert response.json() == {"error": "Only the challenge author can delete this challenge."}

    response = await client.delete(
        f"/api/posts/{post['id']}/challenges/{challenge['id']}",
        headers=auth("alice-token"),
    )
    assert response.status_code == 200

    trip_view = await client.get(f"/api/trips/{trip['id']}", headers=auth("alice-token"))
    assert trip_view.json()["trip"]["posts"][0]["challenges"] == []


@pytest.mark.asyncio
async def test_challenge_limit(client, trip, create_post):
    post = (await create_post(trip["id"], title="Beach day")).json()["post"]

    for n in range(3):
        response = await client.post(
            f"/api/posts/{post['id']}/challenges",
            json={"challengeText": f"Challenge {n}"},
            headers=auth("alice-token"),
        )
        assert response.status_code == 201

    response = await client.post(
        f"/api/posts/{post['id']}/challenges",
        json={"challengeText": "One too many"},
        headers=auth("bob-token"),
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Each post can only have 3 challenges."}


@pytest.mark.asyncio
async def test_challenge_tagging_non_member(client, trip, create_post):
    post = (await create_post(trip["id"], title="Beach day")).json()["post"]
    carol_id = str(derive_user_id("auth0|carol"))

    response = await client.post(
        f"/api/posts/{post['id']}/challenges",
        json={"challengeText": "Join us", "taggedUserId": carol_id},
        headers=auth("alice-token"),
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Tagged user must be an active member of the trip."}


# -----------------------------------------------------------------------------
# Crawl stops
# -----------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_reorder_crawl_locations(client, trip, crawl_post):
    post = await crawl_post(3)
    ids = [stop["id"] for stop in post["crawlLocations"]]
    new_order = [ids[2], ids[0], ids[1]]

    response = await client.patch(
        f"/api/posts/{post['id']}/crawl-locations/reorder",
        json={"orderedLocationIds": new_order},
        headers=auth("bob-token"),
    )

    assert response.status_code == 200
    stops = response.json()["post"]["crawlLocations"]
    assert [stop["id"] for stop in stops] == new_order
    assert [stop["sortOrder"] for stop in stops] == [0, 1, 2]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "make_order, message",
    [
        (lambda ids: ids[:2], "orderedLocationIds must include all crawl locations exactly once."),
        (lambda ids: ids[:2] + [str(uuid.uuid4())], "orderedLocationIds contains unknown crawl location ids."),
        (lambda ids: [ids[0], ids[0], ids[1]], "orderedLocationIds contains unknown crawl location ids."),
    ],
)
async def test_reorder_crawl_locations_rejects_bad_orders(client, trip, crawl_post, make_order, message):
    post = await crawl_post(3)
    ids = [stop["id"] for stop in post["crawlLocations"]]

    response = await client.patch(
        f"/api/posts/{post['id']}/crawl-locations/reorder",
        json={"orderedLocationIds": make_order(ids)},
        headers=auth("alice-token"),
    )

    assert response.status_code == 400
    assert response.json() == {"error": message}


@pytest.mark.asyncio
async def test_reorder_requires_array(client, trip, crawl_post):
    post = await crawl_post(2)

    response = await client.patch(
        f"/api/posts/{post['id']}/crawl-locations/reorder",
        json={},
        headers=auth("alice-token"),
    )

    assert response.status_code == 400
    assert response.json() == {"error": "orderedLocationIds must be an array."}


@pytest.mark.asyncio
async def test_reorder_non_crawl_post(client, trip, create_post):
    post = (await create_post(trip["id"], title="Not a crawl")).json()["post"]

    response = await client.patch(
        f"/api/posts/{post['id']}/crawl-locations/reorder",
        json={"orderedLocationIds": []},
        headers=auth("alice-token"),
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Crawl post not found."}


@pytest.mark.asyncio
async def test_toggle_crawl_location(client, trip, crawl_post):
    post = await crawl_post(2)
    stop_id = post["crawlLocations"][1]["id"]

    response = await client.patch(
        f"/api/posts/{post['id']}/crawl-locations/{stop_id}/toggle",
        headers=auth("bob-token"),
    )

    assert response.status_code == 200
    stops = response.json()["post"]["crawlLocations"]
    assert [stop["isCompleted"] for stop in stops] == [False, True]
    assert response.json()["post"]["updatedAt"] >= post["updatedAt"]


@pytest.mark.asyncio
async def test_toggle_unknown_crawl_location(client, trip, crawl_post):
    post = await crawl_post(1)

    response = await client.patch(
        f"/api/posts/{post['id']}/crawl-locations/{uuid.uuid4()}/toggle",
        headers=auth("alice-token"),
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Crawl location not found."}


@pytest.mark.asyncio
async def test_crawl_location_images(client, trip, crawl_post):
    post = await crawl_post(2)
    stop_id = post["crawlLocations"][0]["id"]

    response = await client.post(
        f"/api/posts/{post['id']}/crawl-locations/{stop_id}/images",
        files=[image("a.png"), image("b.png")],
        headers=auth("bob-token"),
    )

    assert response.status_code == 201
    stops = response.json()["post"]["crawlLocations"]
    assert len(stops[0]["images"]) == 2
    assert stops[1]["images"] == []


@pytest.mark.asyncio
async def test_crawl_location_challenge_lifecycle(client, trip, crawl_post):
    post = await crawl_post(2)
    stop_id = post["crawlLocations"][0]["id"]
    base = f"/api/posts/{post['id']}/crawl-locations/{stop_id}/challenges"

    response = await client.post(base, json={"challengeText": "Order a ginjinha"}, headers=auth("bob-token"))
    assert response.status_code == 201
    challenge = response.json()["challenge"]
    assert challenge["authorName"] == "Bob"

    response = await client.patch(f"{base}/{challenge['id']}/toggle", headers=auth("alice-token"))
    assert response.json()["challenge"]["isCompleted"] is True
    assert response.json()["challenge"]["completedByDisplayName"] == "Alice"

    trip_view = await client.get(f"/api/trips/{trip['id']}", headers=auth("alice-token"))
    stop = trip_view.json()["trip"]["posts"][0]["crawlLocations"][0]
    assert [c["challengeText"] for c in stop["challenges"]] == ["Order a ginjinha"]

    response = await client.delete(f"{base}/{challenge['id']}", headers=auth("alice-token"))
    assert response.status_code == 403

    response = await client.delete(f"{base}/{challenge['id']}", headers=auth("bob-token"))
    assert response.status_code == 200

    for n in range(3):
        response = await client.post(base, json={"challengeText": f"Task {n}"}, headers=auth("alice-token"))
        assert response.status_code == 201
    response = await client.post(base, json={"challengeText": "Too many"}, headers=auth("alice-token"))
    assert response.status_code == 400
    assert response.json() == {"error": "Each crawl location can only have 3 challenges."}
