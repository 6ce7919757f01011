"""Post joined to its author: writes, ownership and post-mapped row queries."""

import pytest

from docspine import (
    AdapterFailure,
    CompositeModel,
    ConfigError,
    MemoryAdapter,
    MutationError,
    NotFoundError,
    Query,
    WriteInstruction,
)


class ReadOnlyUsers(MemoryAdapter):
    """Users adapter whose writes always fail."""

    async def update(self, match, patch):
        raise ConnectionError("users service unavailable")


def post_with_author(store, users_adapter=None) -> CompositeModel:
    return (
        CompositeModel.builder("Post")
        .add_bound_source("post", MemoryAdapter(store, "posts"))
        .add_source("author", users_adapter or MemoryAdapter(store, "users"))
        .add_source("posts", [MemoryAdapter(store, "posts")])
        .map(lambda s: {"title": s["post"]["title"], "author": s["author"]["username"]})
        .add_query(
            "default",
            Query.create()
            .input(lambda id: {"post": {"id": id}}, lambda s: s["post"]["id"])
            .populate("post", lambda s: {"id": s["post"]["id"]})
            .populate("author", lambda s: {"id": s["post"]["author"]}),
        )
        .add_query(
            "byAuthor",
            Query.create(multiple=True)
            .input(lambda author_id: {"author": {"id": author_id}})
            .populate("author", lambda s: {"id": s["author"]["id"]})
            .populate("posts", lambda s: {"author": s["author"]["id"]})
            .map(lambda s: [{"post": post, "author": s["author"]} for post in s["posts"]]),
        )
        .add_mutation("updateAuthor", lambda author_id, sources: [WriteInstruction("post", {"author": author_id})])
        .add_mutation("renameAuthor", lambda username, sources: [WriteInstruction("author", {"username": username})])
        .add_mutation(
            "retitle",
            lambda title, sources: [
                WriteInstruction("post", {"title": title}),
                WriteInstruction("author", {"username": title.lower()}),
            ],
        )
        .add_mutation("touchAll", lambda sources: [WriteInstruction("posts", {"content": "touched"})])
        .add_mutation("comment", lambda text, sources: [{"source": "comments", "data": {"text": text}}])
        .add_mutation(
            "touchByAuthor",
            lambda sources: [
                WriteInstruction("posts", {"content": "touched"}, match={"author": sources["author"]["id"]})
            ],
        )
        .build()
    )


@pytest.fixture
def Post(blog_store) -> CompositeModel:
    return post_with_author(blog_store)


class TestJoinedDocument:
    @pytest.mark.asyncio
    async def test_get(self, Post):
        doc = await Post.get(1)
        assert doc.data == {"title": "Post 1", "author": "jdoe"}
        assert list(doc.sources) == ["post", "author"]

    @pytest.mark.asyncio
    async def test_update_author(self, Post, blog_store):
        doc = await (await Post.get(1)).mutate("updateAuthor", 2)

        assert doc.data["author"] == "twaits"
        assert blog_store.collection("posts")[0]["author"] == 2

    @pytest.mark.asyncio
    async def test_update_unowned_source(self, Post, blog_store):
        doc = await (await Post.get(2)).mutate("renameAuthor", "johnny")

        assert doc.data["author"] == "johnny"
        assert [user["username"] for user in blog_store.collection("users")] == ["johnny", "twaits"]

    @pytest.mark.asyncio
    async def test_missing_author(self, Post, blog_store):
        await MemoryAdapter(blog_store, "users").delete({"id": 1})
        with pytest.raises(NotFoundError) as exc_info:
            await Post.get(1)
        assert exc_info.value.context.source_name == "author"
        assert exc_info.value.context.step == 1

    @pytest.mark.asyncio
    async def test_delete_keeps_unowned_sources(self, Post, blog_store):
        reports = await Post.delete(1)

        assert [report.source for report in reports] == ["post"]
        assert [post["id"] for post in blog_store.collection("posts")] == [2]
        assert [user["id"] for user in blog_store.collection("users")] == [1, 2]


class TestWrites:
    @pytest.mark.asyncio
    async def test_write_to_unresolved_source_needs_match(self, Post):
        doc = await Post.get(1)
        with pytest.raises(MutationError) as exc_info:
            await doc.mutate("touchAll")

        err = exc_info.value
        assert err.context.source_name == "posts"
        assert err.context.instruction_index == 0
        assert err.context.metadata["mutation"] == "touchAll"

    @pytest.mark.asyncio
    async def test_write_to_undeclared_source(self, Post):
        with pytest.raises(ConfigError, match="comments"):
            await (await Post.get(1)).mutate("comment", "hi")

    @pytest.mark.asyncio
    async def test_explicit_match(self, Post, blog_store):
        await (await Post.get(1)).mutate("touchByAuthor")
        assert [post["content"] for post in blog_store.collection("posts")] == ["touched", "touched"]

    @pytest.mark.asyncio
    async def test_failure_mid_mutation_keeps_earlier_writes(self, blog_store):
        Post = post_with_author(blog_store, ReadOnlyUsers(blog_store, "users"))
        doc = await Post.get(1)

        with pytest.raises(AdapterFailure) as exc_info:
            await doc.mutate("retitle", "Renamed")

        err = exc_info.value
        assert err.retryable
        assert err.context.instruction_index == 1
        assert err.context.source_name == "author"
        assert err.context.operation == "update"
        assert isinstance(err.cause, ConnectionError)
        assert blog_store.collection("posts")[0]["title"] == "Renamed"
        assert blog_store.collection("users")[0]["username"] == "jdoe"


class TestByAuthor:
    @pytest.mark.asyncio
    async def test_post_mapped_rows(self, Post):
        docs = await Post.query("byAuthor", 1)
        assert [doc.data for doc in docs] == [
            {"title": "Post 1", "author": "jdoe"},
            {"title": "Post 2", "author": "jdoe"},
        ]

    @pytest.mark.asyncio
    async def test_author_without_posts(self, Post):
        assert await Post.query("byAuthor", 2) == []

    @pytest.mark.asyncio
    async def test_unknown_author(self, Post):
        with pytest.raises(NotFoundError):
            await Post.query("byAuthor", 42)

    @pytest.mark.asyncio
    async def test_mutating_a_row_moves_it(self, Post):
        first, _ = await Post.query("byAuthor", 1)
        moved = await first.mutate("updateAuthor", 2)

        assert moved.data == {"title": "Post 1", "author": "twaits"}
        assert [doc.data["title"] for doc in await Post.query("byAuthor", 1)] == ["Post 2"]
        assert [doc.data["title"] for doc in await Post.query("byAuthor", 2)] == ["Post 1"]

    @pytest.mark.asyncio
    async def test_deleting_a_row(self, Post, blog_store):
        _, second = await Post.query("byAuthor", 1)
        reports = await second.delete()

        assert [post["id"] for post in reports[0].deleted] == [2]
        assert [post["id"] for post in blog_store.collection("posts")] == [1]
