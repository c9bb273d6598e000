"""
Profile routes: upsert, lookups, experience / education entries, account
deletion and the GitHub proxy.
"""

import uuid
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError

from connectors.github import GitHubClient
from database.models import Post, Profile, User

PROFILE = {"status": "Developer", "skills": "python, sql ,go"}


def _experience(title="Engineer", company="Acme", **extra):
    return {"title": title, "company": company, "from": "2020-01-01", **extra}


def _education(school="MIT", **extra):
    return {
        "school": school,
        "degree": "BSc",
        "fieldofstudy": "CS",
        "from": "2012-09-01",
        **extra,
    }


@pytest.fixture
def with_profile(client, register_user, auth_headers):
    """Register a user, create their profile and return the auth headers."""

    async def _make(**fields):
        headers = auth_headers(await register_user())
        resp = await client.post("/api/profile", json={**PROFILE, **fields}, headers=headers)
        assert resp.status_code == 200, resp.text
        return headers

    return _make


class TestUpsertProfile:
    @pytest.mark.asyncio
    async def test_create_profile(self, client, register_user, auth_headers):
        headers = auth_headers(await register_user())
        resp = await client.post(
            "/api/profile",
            json={**PROFILE, "bio": "Hello", "twitter": "https://twitter.com/a"},
            headers=headers,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "Developer"
        assert body["skills"] == ["python", "sql", "go"]
        assert body["bio"] == "Hello"
        assert body["social"] == {"twitter": "https://twitter.com/a"}
        assert body["user"]["name"] == "A"
        assert body["experience"] == [] and body["education"] == []

    @pytest.mark.asyncio
    async def test_sparse_update_keeps_unsupplied_fields(self, client, with_profile):
        headers = await with_profile(bio="Hello", company="Acme")
        resp = await client.post(
            "/api/profile", json={"status": "X", "skills": "a,b,c"}, headers=headers
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "X"
        assert body["skills"] == ["a", "b", "c"]
        assert body["bio"] == "Hello"
        assert body["company"] == "Acme"

    @pytest.mark.asyncio
    async def test_social_links_merge_per_network(self, client, with_profile):
        headers = await with_profile(youtube="yt", twitter="tw")
        resp = await client.post(
            "/api/profile", json={**PROFILE, "twitter": "tw2"}, headers=headers
        )
        assert resp.status_code == 200
        assert resp.json()["social"] == {"youtube": "yt", "twitter": "tw2"}

        resp = await client.post("/api/profile", json=PROFILE, headers=headers)
        assert resp.json()["social"] == {"youtube": "yt", "twitter": "tw2"}

    @pytest.mark.asyncio
    async def test_upsert_never_creates_a_second_row(self, app, client, with_profile):
        headers = await with_profile()
        await client.post("/api/profile", json=PROFILE, headers=headers)
        await client.post("/api/profile", json=PROFILE, headers=headers)
        async with app.state.session_factory() as session:
            count = (await session.execute(select(func.count()).select_from(Profile))).scalar_one()
        assert count == 1

    @pytest.mark.asyncio
    async def test_update_keeps_entries(self, client, with_profile):
        headers = await with_profile()
        await client.put("/api/profile/experience", json=_experience(), headers=headers)
        resp = await client.post("/api/profile", json={"status": "Lead", "skills": "go"}, headers=headers)
        assert len(resp.json()["experience"]) == 1

    @pytest.mark.asyncio
    async def test_status_and_skills_required(self, client, register_user, auth_headers):
        headers = auth_headers(await register_user())
        resp = await client.post("/api/profile", json={"bio": "only bio"}, headers=headers)
        assert resp.status_code == 400
        messages = [e["msg"] for e in resp.json()["errors"]]
        assert sorted(messages) == ["Skills is required", "Status is required"]


class TestProfileLookups:
    @pytest.mark.asyncio
    async def test_me_without_profile(self, client, register_user, auth_headers):
        headers = auth_headers(await register_user())
        resp = await client.get("/api/profile/me", headers=headers)
        assert resp.status_code == 400
        assert resp.json() == {"msg": "There is no profile for this user"}

    @pytest.mark.asyncio
    async def test_me_joins_user(self, client, with_profile):
        headers = await with_profile()
        body = (await client.get("/api/profile/me", headers=headers)).json()
        assert set(body["user"]) == {"id", "name", "avatar"}
        assert body["user"]["avatar"].startswith("https://www.gravatar.com/avatar/")

    @pytest.mark.asyncio
    async def test_list_profiles_is_public(self, client, register_user, auth_headers):
        for name, email in (("A", "a@x.com"), ("B", "b@x.com")):
            headers = auth_headers(await register_user(name=name, email=email))
            await client.post("/api/profile", json=PROFILE, headers=headers)
        resp = await client.get("/api/profile")
        assert resp.status_code == 200
        assert sorted(p["user"]["name"] for p in resp.json()) == ["A", "B"]

    @pytest.mark.asyncio
    async def test_profile_by_user_id(self, client, with_profile):
        headers = await with_profile()
        me = (await client.get("/api/profile/me", headers=headers)).json()
        resp = await client.get(f"/api/profile/user/{me['user']['id']}")
        assert resp.status_code == 200
        assert resp.json()["id"] == me["id"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id", [str(uuid.uuid4()), "not-an-id"])
    async def test_profile_by_unknown_user_id(self, client, user_id):
        resp = await client.get(f"/api/profile/user/{user_id}")
        assert resp.status_code == 400
        assert resp.json() == {"msg": "No profile found"}


class TestExperience:
    @pytest.mark.asyncio
    async def test_new_entry_is_prepended(self, client, with_profile):
        headers = await with_profile()
        await client.put("/api/profile/experience", json=_experience("First"), headers=headers)
        before = (await client.get("/api/profile/me", headers=headers)).json()["experience"]

        resp = await client.put("/api/profile/experience", json=_experience("Second"), headers=headers)
        assert resp.status_code == 200
        after = (await client.get("/api/profile/me", headers=headers)).json()["experience"]

        assert len(after) == len(before) + 1
        assert after[0]["title"] == "Second"
        assert after[1:] == before
        assert after[0]["id"] != after[1]["id"]
        assert after[0]["from"] == "2020-01-01"

    @pytest.mark.asyncio
    async def test_missing_title(self, client, with_profile):
        headers = await with_profile()
        body = _experience()
        del body["title"]
        resp = await client.put("/api/profile/experience", json=body, headers=headers)
        assert resp.status_code == 400
        assert "Title is required" in [e["msg"] for e in resp.json()["errors"]]

    @pytest.mark.asyncio
    async def test_all_missing_fields_reported(self, client, with_profile):
        headers = await with_profile()
        resp = await client.put("/api/profile/experience", json={}, headers=headers)
        messages = {e["msg"] for e in resp.json()["errors"]}
        assert messages == {"Title is required", "Company is required", "From date is required"}

    @pytest.mark.asyncio
    async def test_add_without_profile(self, client, register_user, auth_headers):
        headers = auth_headers(await register_user())
        resp = await client.put("/api/profile/experience", json=_experience(), headers=headers)
        assert resp.status_code == 400
        assert resp.json() == {"msg": "There is no profile for this user"}

    @pytest.mark.asyncio
    async def test_update_replaces_entry_in_place(self, client, with_profile):
        headers = await with_profile()
        for title in ("Old", "Middle", "New"):
            await client.put("/api/profile/experience", json=_experience(title), headers=headers)
        entries = (await client.get("/api/profile/me", headers=headers)).json()["experience"]
        target = entries[1]

        resp = await client.post(
            f"/api/profile/experience/{target['id']}",
            json=_experience("Renamed", company="Other", current=True),
            headers=headers,
        )
        assert resp.status_code == 200
        updated = resp.json()["experience"]
        assert [e["title"] for e in updated] == ["New", "Renamed", "Old"]
        assert updated[1]["id"] == target["id"]
        assert updated[1]["company"] == "Other"
        assert updated[1]["current"] is True
        # replaced wholesale, not merged
        assert updated[1]["location"] is None

    @pytest.mark.asyncio
    async def test_delete_removes_exactly_one(self, client, with_profile):
        headers = await with_profile()
        for title in ("One", "Two", "Three"):
            await client.put("/api/profile/experience", json=_experience(title), headers=headers)
        entries = (await client.get("/api/profile/me", headers=headers)).json()["experience"]

        resp = await client.delete(f"/api/profile/experience/{entries[1]['id']}", headers=headers)
        assert resp.status_code == 200
        remaining = resp.json()["experience"]
        assert len(remaining) == len(entries) - 1
        assert [e["id"] for e in remaining] == [entries[0]["id"], entries[2]["id"]]

    @pytest.mark.asyncio
    async def test_unknown_id_is_not_found_and_changes_nothing(self, client, with_profile):
        headers = await with_profile()
        await client.put("/api/profile/experience", json=_experience(), headers=headers)
        before = (await client.get("/api/profile/me", headers=headers)).json()["experience"]

        update = await client.post("/api/profile/experience/nope", json=_experience("X"), headers=headers)
        delete = await client.delete("/api/profile/experience/nope", headers=headers)
        assert update.status_code == delete.status_code == 404
        assert update.json() == {"msg": "Experience not found"}

        after = (await client.get("/api/profile/me", headers=headers)).json()["experience"]
        assert after == before


class TestEducation:
    @pytest.mark.asyncio
    async def test_add_update_delete(self, client, with_profile):
        headers = await with_profile()
        await client.put("/api/profile/education", json=_education("MIT"), headers=headers)
        resp = await client.put("/api/profile/education", json=_education("CMU"), headers=headers)
        entries = resp.json()["education"]
        assert [e["school"] for e in entries] == ["CMU", "MIT"]

        resp = await client.post(
            f"/api/profile/education/{entries[1]['id']}",
            json=_education("Stanford"),
            headers=headers,
        )
        assert [e["school"] for e in resp.json()["education"]] == ["CMU", "Stanford"]

        resp = await client.delete(f"/api/profile/education/{entries[0]['id']}", headers=headers)
        assert [e["school"] for e in resp.json()["education"]] == ["Stanford"]

    @pytest.mark.asyncio
    async def test_required_fields(self, client, with_profile):
        headers = await with_profile()
        resp = await client.put("/api/profile/education", json={"school": "MIT"}, headers=headers)
        assert resp.status_code == 400
        messages = {e["msg"] for e in resp.json()["errors"]}
        assert messages == {"Degree is required", "Field of study is required", "From date is required"}

    @pytest.mark.asyncio
    async def test_unknown_id(self, client, with_profile):
        headers = await with_profile()
        resp = await client.delete("/api/profile/education/nope", headers=headers)
        assert resp.status_code == 404
        assert resp.json() == {"msg": "Education not found"}


class TestDeleteAccount:
    @pytest.mark.asyncio
    async def test_removes_posts_profile_and_user(self, app, client, with_profile):
        headers = await with_profile()
        await client.post("/api/post", json={"text": "hello"}, headers=headers)

        resp = await client.delete("/api/profile", headers=headers)
        assert resp.status_code == 200
        assert resp.json() == {"msg": "User removed"}

        async with app.state.session_factory() as session:
            for model in (Post, Profile, User):
                count = (await session.execute(select(func.count()).select_from(model))).scalar_one()
                assert count == 0, model.__name__

        resp = await client.get("/api/auth", headers=headers)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_other_users_untouched(self, app, client, register_user, auth_headers, with_profile):
        other = auth_headers(await register_user(name="B", email="b@x.com"))
        await client.post("/api/post", json={"text": "mine"}, headers=other)
        headers = await with_profile()

        await client.delete("/api/profile", headers=headers)

        async with app.state.session_factory() as session:
            users = (await session.execute(select(User.name))).scalars().all()
            posts = (await session.execute(select(func.count()).select_from(Post))).scalar_one()
        assert users == ["B"]
        assert posts == 1

    @pytest.mark.asyncio
    async def test_deleted_account_token_cannot_write(self, client, with_profile):
        headers = await with_profile()
        await client.delete("/api/profile", headers=headers)

        resp = await client.post("/api/profile", json=PROFILE, headers=headers)
        assert resp.status_code == 404
        assert resp.json() == {"msg": "User not found"}

        resp = await client.put("/api/profile/experience", json=_experience(), headers=headers)
        assert resp.status_code == 400
        assert resp.json() == {"msg": "There is no profile for this user"}

        resp = await client.get("/api/profile")
        assert resp.status_code == 200
        assert resp.json() == []

    @pytest.mark.asyncio
    async def test_profile_requires_existing_user(self, app):
        async with app.state.session_factory() as session:
            session.add(Profile(user_id=uuid.uuid4(), status="Dev"))
            with pytest.raises(IntegrityError):
                await session.commit()

    @pytest.mark.asyncio
    async def test_failure_rolls_back_every_step(self, app, client, with_profile):
        headers = await with_profile()
        await client.post("/api/post", json={"text": "hello"}, headers=headers)

        with patch("api.profile.delete_account", new_callable=AsyncMock) as mock_delete:
            async def _partial(session, user_id):
                await session.execute(delete(Post).where(Post.user_id == user_id))
                raise RuntimeError("store went away")

            mock_delete.side_effect = _partial
            transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as raw:
                resp = await raw.delete("/api/profile", headers=headers)

        assert resp.status_code == 500
        assert resp.json() == {"msg": "Server Error"}
        async with app.state.session_factory() as session:
            posts = (await session.execute(select(func.count()).select_from(Post))).scalar_one()
        assert posts == 1


class TestGitHubRepos:
    @pytest.mark.asyncio
    async def test_proxies_repos(self, app, client):
        repos = [{"name": "first"}, {"name": "second"}]
        with patch.object(app.state.github, "list_repos", new_callable=AsyncMock) as mock_list:
            mock_list.return_value = repos
            resp = await client.get("/api/profile/github/octocat")
        assert resp.status_code == 200
        assert resp.json() == repos
        mock_list.assert_awaited_once_with("octocat")

    @pytest.mark.asyncio
    async def test_upstream_failure_is_uniform_not_found(self, app, client):
        request = httpx.Request("GET", "https://api.github.com/users/ghost/repos")
        failures = [
            httpx.HTTPStatusError("404", request=request, response=httpx.Response(404, request=request)),
            httpx.ConnectError("down", request=request),
        ]
        for failure in failures:
            with patch.object(app.state.github, "list_repos", new_callable=AsyncMock) as mock_list:
                mock_list.side_effect = failure
                resp = await client.get("/api/profile/github/ghost")
            assert resp.status_code == 404
            assert resp.json() == {"msg": "No Github profile found"}

    @pytest.mark.asyncio
    async def test_non_json_reply_is_not_found(self, app, client, settings):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>rate limited</html>"))
        with patch.object(app.state, "github", GitHubClient(settings, transport=transport)):
            resp = await client.get("/api/profile/github/octocat")
        assert resp.status_code == 404
        assert resp.json() == {"msg": "No Github profile found"}
