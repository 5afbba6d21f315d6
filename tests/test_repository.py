import pytest
from sqlalchemy import func, insert, select

from engagement.exceptions import PostNotFound, ValidationFailed
from engagement.models import Comment, PostLike
from engagement.repository import PostRepository


@pytest.mark.asyncio
async def test_list_all_sorts_newest_first(users, make_post, db):
    old = await make_post("alice", "old", minutes_ago=30)
    new = await make_post("bob", "new", minutes_ago=1)
    mid = await make_post("carol", "mid", minutes_ago=10)

    posts = await PostRepository(db).list_all()

    assert [p.post_id for p in posts] == [new, mid, old]
    stamps = [p.created_at for p in posts]
    assert stamps == sorted(stamps, reverse=True)


@pytest.mark.asyncio
async def test_list_all_drops_posts_with_unresolved_author(users, make_post, db):
    kept = await make_post("alice", "still here")
    await make_post("deleted-account", "orphan", minutes_ago=5)

    posts = await PostRepository(db).list_all()

    assert [p.post_id for p in posts] == [kept]


@pytest.mark.asyncio
async def test_list_all_filters_by_author_set(users, make_post, db):
    a = await make_post("alice", "a", minutes_ago=3)
    await make_post("carol", "c", minutes_ago=2)
    b = await make_post("bob", "b", minutes_ago=1)

    posts = await PostRepository(db).list_all(author_ids={"alice", "bob"})

    assert [p.post_id for p in posts] == [b, a]


@pytest.mark.asyncio
async def test_feed_projection_is_lightweight(users, make_post, db):
    post_id = await make_post("alice", "hello")
    repo = PostRepository(db)
    await repo.append_comment(post_id, "bob", "nice")

    [post] = await repo.list_all()

    assert post.author.name == "Alice Chen"
    assert post.author.username == "alice"
    assert post.author.avatar == "http://img/alice.png"
    assert post.author.headline == "ML Engineer"
    assert "email" not in post.author.model_dump()
    commenter = post.comments[0].user.model_dump()
    assert commenter == {"user_id": "bob", "name": "Bob Martinez", "avatar": None}


@pytest.mark.asyncio
async def test_get_by_id_returns_detail_projection(users, make_post, db):
    post_id = await make_post("alice", "hello")
    repo = PostRepository(db)
    await repo.append_comment(post_id, "bob", "nice")

    post = await repo.get_by_id(post_id)

    assert post.author.email == "alice@example.com"
    assert post.comments[0].user.username == "bob"
    assert post.comments[0].user.headline == "Builder"


@pytest.mark.asyncio
async def test_get_by_id_missing_raises(users, db):
    with pytest.raises(PostNotFound):
        await PostRepository(db).get_by_id("nope")


@pytest.mark.asyncio
async def test_create_requires_content(users, db):
    repo = PostRepository(db)
    with pytest.raises(ValidationFailed):
        await repo.create("alice", None)
    with pytest.raises(ValidationFailed):
        await repo.create("alice", "   ")


@pytest.mark.asyncio
async def test_create_persists_optional_fields(users, db):
    post = await PostRepository(db).create(
        "alice", "with extras", image="http://assets/x.png", sentiment={"label": "NEUTRAL"}
    )

    assert post.author_id == "alice"
    assert post.image == "http://assets/x.png"
    assert post.sentiment == {"label": "NEUTRAL"}
    assert post.likes == []
    assert post.comments == []


@pytest.mark.asyncio
async def test_append_comment_keeps_insertion_order(users, make_post, db):
    post_id = await make_post("alice", "thread")
    repo = PostRepository(db)

    await repo.append_comment(post_id, "bob", "first")
    await repo.append_comment(post_id, "carol", "second")
    post = await repo.append_comment(post_id, "alice", "third")

    assert [c.content for c in post.comments] == ["first", "second", "third"]
    assert [c.user_id for c in post.comments] == ["bob", "carol", "alice"]


@pytest.mark.asyncio
async def test_append_comment_unresolved_commenter_has_no_summary(users, make_post, db):
    post_id = await make_post("alice", "thread")

    post = await PostRepository(db).append_comment(post_id, "ghost", "boo")

    assert post.comments[0].user_id == "ghost"
    assert post.comments[0].user is None


@pytest.mark.asyncio
async def test_append_comment_missing_post(users, db):
    with pytest.raises(PostNotFound):
        await PostRepository(db).append_comment("nope", "bob", "hi")


@pytest.mark.asyncio
async def test_toggle_like_flips_membership(users, make_post, db):
    post_id = await make_post("alice", "like me")
    repo = PostRepository(db)

    post, liked = await repo.toggle_like(post_id, "bob")
    assert liked is True
    assert post.likes == ["bob"]

    post, liked = await repo.toggle_like(post_id, "bob")
    assert liked is False
    assert post.likes == []

    count = await db.scalar(select(func.count()).select_from(PostLike))
    assert count == 0


@pytest.mark.asyncio
async def test_toggle_like_missing_post(users, db):
    with pytest.raises(PostNotFound):
        await PostRepository(db).toggle_like("nope", "bob")


@pytest.mark.asyncio
async def test_delete_by_id_removes_children(users, make_post, db):
    post_id = await make_post("alice", "bye")
    repo = PostRepository(db)
    await repo.append_comment(post_id, "bob", "wait")
    await repo.toggle_like(post_id, "bob")

    await repo.delete_by_id(post_id)

    with pytest.raises(PostNotFound):
        await repo.get_by_id(post_id)
    assert await db.scalar(select(func.count()).select_from(Comment)) == 0
    assert await db.scalar(select(func.count()).select_from(PostLike)) == 0


@pytest.mark.asyncio
async def test_delete_by_id_missing(users, db):
    with pytest.raises(PostNotFound):
        await PostRepository(db).delete_by_id("nope")


@pytest.mark.asyncio
async def test_add_like_ignores_existing_row(users, make_post, db):
    post_id = await make_post("alice", "like me")
    repo = PostRepository(db)

    assert await repo._add_like(post_id, "bob") is True
    assert await repo._add_like(post_id, "bob") is False
    assert await db.scalar(select(func.count()).select_from(PostLike)) == 1


@pytest.mark.asyncio
async def test_toggle_like_cancels_a_concurrent_like(users, make_post, db, monkeypatch):
    post_id = await make_post("alice", "like me")
    repo = PostRepository(db)
    remove_like = repo._remove_like
    calls = []

    async def like_lands_between_statements(post_id, user_id):
        removed = await remove_like(post_id, user_id)
        if not calls:
            # Another request's toggle inserts the like right after our DELETE
            await db.execute(insert(PostLike).values(post_id=post_id, user_id=user_id))
        calls.append(removed)
        return removed

    monkeypatch.setattr(repo, "_remove_like", like_lands_between_statements)

    post, liked = await repo.toggle_like(post_id, "bob")

    assert liked is False
    assert post.likes == []
    assert calls == [False, True]
    assert await db.scalar(select(func.count()).select_from(PostLike)) == 0
