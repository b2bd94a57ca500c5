"""Resume resolver and resume endpoint tests."""

import pytest
from httpx import AsyncClient

from onboarding.middleware.exceptions import ApplicationNotFoundError
from onboarding.services.resume import ResumeResolver, extract_token, resume_qr_svg, resume_url

TOKEN = "AbCdEfGhIjKlMnOpQrStUvWxYz012345"


@pytest.mark.unit
class TestExtractToken:

    def test_raw_token(self):
        assert extract_token(f"  {TOKEN} ") == TOKEN

    def test_resume_url(self):
        assert extract_token(f"https://apply.example.ph/resume/{TOKEN}") == TOKEN

    def test_resume_url_with_query_and_fragment(self):
        assert extract_token(f"https://apply.example.ph/resume/{TOKEN}/?utm=qr#top") == TOKEN

    def test_relative_path(self):
        assert extract_token(f"/resume/{TOKEN}?src=sms") == TOKEN

    def test_resume_url_round_trips(self):
        assert extract_token(resume_url(TOKEN)) == TOKEN

    def test_qr_is_svg(self):
        svg = resume_qr_svg(TOKEN)
        assert b"<svg" in svg


@pytest.mark.integration
@pytest.mark.asyncio
class TestResumeResolver:

    async def test_resolves_exact_token(self, store):
        application = await store.create()
        resolved = await ResumeResolver(store).resolve(application.resume_token)
        assert resolved.id == application.id

    async def test_resolves_scanned_url(self, store):
        application = await store.create()
        resolved = await ResumeResolver(store).resolve(resume_url(application.resume_token))
        assert resolved.id == application.id

    @pytest.mark.parametrize("mutate", [
        lambda t: t[:-1],                # truncated
        lambda t: t[:-1] + ("A" if t[-1] != "A" else "B"),  # near miss
        lambda t: t.upper() if t.upper() != t else t.lower(),  # case changed
        lambda t: t + "!",               # bad symbol
        lambda t: "",                    # empty
    ])
    async def test_anything_but_exact_match_is_not_found(self, store, mutate):
        application = await store.create()
        with pytest.raises(ApplicationNotFoundError) as exc_info:
            await ResumeResolver(store).resolve(mutate(application.resume_token))
        assert exc_info.value.message == "Application not found"

    async def test_public_id_is_not_a_resume_token(self, store):
        application = await store.create()
        with pytest.raises(ApplicationNotFoundError):
            await ResumeResolver(store).resolve(application.application_id)


@pytest.mark.api
@pytest.mark.asyncio
class TestResumeEndpoints:

    async def test_resume_returns_record(self, client: AsyncClient):
        created = (await client.post("/api/applications", json={"email": "ana@gmail.com"})).json()

        resp = await client.get(f"/api/applications/resume/{created['resume_token']}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["application_id"] == created["application_id"]
        assert data["personal_info"] == {"email": "ana@gmail.com"}
        assert resp.headers["cache-control"] == "no-store"

    async def test_unknown_and_malformed_tokens_look_the_same(self, client: AsyncClient):
        created = (await client.post("/api/applications")).json()
        unknown = "Z" * 32 if created["resume_token"] != "Z" * 32 else "Y" * 32

        responses = [
            await client.get(f"/api/applications/resume/{unknown}"),
            await client.get("/api/applications/resume/short"),
            await client.get(f"/api/applications/resume/{created['application_id']}"),
        ]
        assert {r.status_code for r in responses} == {404}
        assert len({r.text for r in responses}) == 1

    async def test_qr_code(self, client: AsyncClient):
        created = (await client.post("/api/applications")).json()

        resp = await client.get(f"/api/applications/resume/{created['resume_token']}/qr")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("image/svg+xml")
        assert b"<svg" in resp.content

        resp = await client.get("/api/applications/resume/" + "Q" * 32 + "/qr")
        assert resp.status_code == 404
