"""Tests for the managed Koyeb resources."""

import pytest
from tfkoyeb.config.settings import Settings
from tfkoyeb.core.errors import (
    InvalidReferenceError,
    ReferenceNotFoundError,
    ValidationError,
    WaitTimeoutError,
)
from tfkoyeb.providers.koyeb import KoyebProvider
from tfkoyeb.providers.resources import DEFAULT_VOLUME_TYPE, KoyebResource, expand_secret


async def _create_app(provider, name="web-app"):
    return await provider.app().apply({"name": name})


class TestResourceHooks:
    def test_missing_hooks_cannot_be_instantiated(self, provider):
        class Incomplete(KoyebResource):
            RESOURCE = "koyeb_incomplete"

            async def _fetch(self, resource_id):
                return {}

        with pytest.raises(TypeError):
            Incomplete(provider)

    @pytest.mark.asyncio
    async def test_app_has_no_in_place_update(self, provider, fake_api):
        state = await _create_app(provider)

        await provider.app()._update(state["id"], {"name": "web-app"})

        assert [m[0] for m in fake_api.mutations] == ["create"]


class TestAppResource:
    @pytest.mark.asyncio
    async def test_apply_creates_app(self, provider, fake_api):
        state = await _create_app(provider)

        assert state["name"] == "web-app"
        assert state["organization_id"] == "org-1"
        assert state["domains"] == []
        assert fake_api.mutations == [("create", "app", state["id"])]

    @pytest.mark.asyncio
    async def test_name_length_validated(self, provider, fake_api):
        with pytest.raises(ValidationError):
            await provider.app().apply({"name": "ab"})
        assert fake_api.mutations == []

    @pytest.mark.asyncio
    async def test_plan_without_changes(self, provider):
        state = await _create_app(provider)

        plan = await provider.app().plan({"id": state["id"], "name": "web-app"})

        assert plan.has_changes is False
        assert plan.metadata == {"id": state["id"]}

    @pytest.mark.asyncio
    async def test_rename_replaces_app(self, provider, fake_api):
        old = await _create_app(provider)

        plan = await provider.app().plan({"id": old["id"], "name": "renamed"})
        assert plan.requires_replace is True

        new = await provider.app().apply({"id": old["id"], "name": "renamed"})

        assert new["id"] != old["id"]
        assert new["name"] == "renamed"
        assert [m[:2] for m in fake_api.mutations] == [("create", "app"), ("delete", "app"), ("create", "app")]
        assert await provider.app().read(old["id"]) is None

    @pytest.mark.asyncio
    async def test_destroy_waits_until_gone(self, provider, fake_api):
        state = await _create_app(provider)

        await provider.app().destroy(state["id"])

        assert fake_api.apps == []
        assert await provider.app().read(state["id"]) is None

    @pytest.mark.asyncio
    async def test_destroy_already_deleted(self, provider, fake_api):
        state = await _create_app(provider)
        fake_api.apps.clear()

        await provider.app().destroy(state["id"])

        assert [m[0] for m in fake_api.mutations] == ["create"]

    @pytest.mark.asyncio
    async def test_missing_app_plans_create(self, provider):
        plan = await provider.app().plan({"id": "0b5a1b8e-7c2f-4c59-9d0e-5f7a3c6b2e11", "name": "web-app"})

        assert [change.action for change in plan.changes] == ["create"]
        assert plan.requires_replace is False

    @pytest.mark.asyncio
    async def test_import_by_name(self, provider):
        state = await _create_app(provider)

        imported = await provider.app().import_state("web-app")

        assert imported == state

    @pytest.mark.asyncio
    async def test_import_unknown_name(self, provider):
        with pytest.raises(ReferenceNotFoundError):
            await provider.app().import_state("ghost")


class TestDomainResource:
    @pytest.mark.asyncio
    async def test_create_attached_to_app_by_name(self, provider, fake_api):
        app = await _create_app(provider)

        state = await provider.domain().apply({"name": "example.com", "app_name": "web-app"})

        assert state["app_id"] == app["id"]
        assert state["app_name"] == "web-app"
        assert state["status"] == "PENDING"

    @pytest.mark.asyncio
    async def test_create_detached(self, provider):
        state = await provider.domain().apply({"name": "example.com"})

        assert state["app_id"] is None
        assert state["app_name"] is None

    @pytest.mark.asyncio
    async def test_reassign_to_other_app_updates_in_place(self, provider, fake_api):
        await _create_app(provider, "web-app")
        other = await _create_app(provider, "other-app")
        domain = await provider.domain().apply({"name": "example.com", "app_name": "web-app"})

        desired = {"id": domain["id"], "name": "example.com", "app_name": "other-app"}
        plan = await provider.domain().plan(desired)
        assert [change.details for change in plan.changes] == [{"field": "app_id"}]

        state = await provider.domain().apply(desired)

        assert state["id"] == domain["id"]
        assert state["app_id"] == other["id"]
        assert fake_api.mutations[-1] == ("update", "domain", domain["id"])

    @pytest.mark.asyncio
    async def test_unknown_app_name_fails(self, provider, fake_api):
        with pytest.raises(ReferenceNotFoundError):
            await provider.domain().apply({"name": "example.com", "app_name": "ghost"})
        assert fake_api.mutations == []


class TestServiceResource:
    DEFINITION = {"name": "svc", "regions": ["fra"], "instance_types": [{"type": "nano"}]}

    @pytest.mark.asyncio
    async def test_create_resolves_app_name(self, provider, fake_api):
        app = await _create_app(provider, "a-app")

        state = await provider.service().apply({"app_name": "a-app", "definition": self.DEFINITION})

        assert state["app_id"] == app["id"]
        assert state["app_name"] == "a-app"
        assert state["definition"] == self.DEFINITION
        assert state["latest_deployment"] == fake_api.deployments[-1]["id"]

    @pytest.mark.asyncio
    async def test_create_requires_app(self, provider):
        with pytest.raises(ValidationError):
            await provider.service().apply({"definition": self.DEFINITION})

    @pytest.mark.asyncio
    async def test_definition_change_redeploys(self, provider, fake_api):
        await _create_app(provider, "a-app")
        service = await provider.service().apply({"app_name": "a-app", "definition": self.DEFINITION})

        new_definition = {**self.DEFINITION, "regions": ["was"]}
        state = await provider.service().apply(
            {"id": service["id"], "app_name": "a-app", "definition": new_definition}
        )

        assert state["id"] == service["id"]
        assert state["definition"] == new_definition
        assert state["latest_deployment"] != service["latest_deployment"]

    @pytest.mark.asyncio
    async def test_moving_app_requires_replace(self, provider):
        await _create_app(provider, "a-app")
        await _create_app(provider, "b-app")
        service = await provider.service().apply({"app_name": "a-app", "definition": self.DEFINITION})

        plan = await provider.service().plan(
            {"id": service["id"], "app_name": "b-app", "definition": self.DEFINITION}
        )

        assert plan.requires_replace is True

    @pytest.mark.asyncio
    async def test_waits_for_healthy_deployment(self, provider):
        await _create_app(provider, "a-app")

        state = await provider.service().apply(
            {"app_name": "a-app", "definition": self.DEFINITION, "wait_for_deployment": True}
        )

        assert state["definition"] == self.DEFINITION

    @pytest.mark.asyncio
    async def test_deployment_wait_times_out(self, fake_api, monkeypatch):
        provider = KoyebProvider(
            fake_api,  # type: ignore[arg-type]
            settings=Settings(token="t", wait_timeout=0.0, wait_poll_interval=0.0),
        )
        await _create_app(provider, "a-app")

        async def stuck_deployment(deployment_id):
            return {"id": deployment_id, "status": "PROVISIONING"}

        monkeypatch.setattr(fake_api, "get_deployment", stuck_deployment)

        with pytest.raises(WaitTimeoutError) as exc_info:
            await provider.service().apply(
                {"app_name": "a-app", "definition": self.DEFINITION, "wait_for_deployment": True}
            )

        assert exc_info.value.last_status == "PROVISIONING"

    @pytest.mark.asyncio
    async def test_import_by_slug(self, provider):
        await _create_app(provider, "a-app")
        service = await provider.service().apply({"app_name": "a-app", "definition": self.DEFINITION})

        imported = await provider.service().import_state("a-app/svc")

        assert imported["id"] == service["id"]


class TestSecretResource:
    @pytest.mark.asyncio
    async def test_simple_secret_value_is_read_back(self, provider, fake_api):
        state = await provider.secret().apply({"name": "token", "value": "hunter2"})

        assert state["type"] == "SIMPLE"
        assert state["value"] == "hunter2"

    @pytest.mark.asyncio
    async def test_value_drift_detected(self, provider, fake_api):
        state = await provider.secret().apply({"name": "token", "value": "hunter2"})
        fake_api.secrets[0]["value"] = "changed-outside"

        plan = await provider.secret().drift({"id": state["id"], "name": "token", "value": "hunter2"})

        assert [change.details for change in plan.changes] == [{"field": "value"}]
        assert plan.requires_replace is False

    @pytest.mark.asyncio
    async def test_registry_secret(self, provider):
        credentials = {"username": "u", "password": "p", "url": "registry.example.com"}

        state = await provider.secret().apply({"name": "registry", "private_registry": credentials})

        assert state["type"] == "REGISTRY"
        assert state["private_registry"] == credentials
        assert "value" not in state

    @pytest.mark.asyncio
    async def test_type_change_requires_replace(self, provider):
        state = await provider.secret().apply({"name": "token", "value": "hunter2"})

        plan = await provider.secret().plan({"id": state["id"], "name": "token", "type": "REGISTRY"})

        assert plan.requires_replace is True


class TestExpandSecret:
    def test_digital_ocean_block_uses_api_field(self):
        payload = expand_secret(
            {"name": "do", "digital_ocean_container_registry": {"username": "u", "password": "p"}}
        )

        assert payload == {
            "name": "do",
            "type": "REGISTRY",
            "digital_ocean_registry": {"username": "u", "password": "p"},
        }

    def test_azure_block_carries_registry_name(self):
        payload = expand_secret(
            {
                "name": "acr",
                "azure_container_registry": {"username": "u", "password": "p", "registry_name": "reg"},
            }
        )

        assert payload["azure_container_registry"]["registry_name"] == "reg"

    def test_multiple_registries_rejected(self):
        with pytest.raises(ValidationError):
            expand_secret(
                {
                    "name": "x",
                    "github_registry": {"username": "u", "password": "p"},
                    "gitlab_registry": {"username": "u", "password": "p"},
                }
            )

    def test_value_conflicts_with_registry(self):
        with pytest.raises(ValidationError):
            expand_secret(
                {"name": "x", "value": "v", "docker_hub_registry": {"username": "u", "password": "p"}}
            )


class TestVolumeResource:
    DESIRED = {"name": "data", "region": "fra", "max_size": 10}

    @pytest.mark.asyncio
    async def test_create_defaults_volume_type(self, provider):
        state = await provider.volume().apply(dict(self.DESIRED))

        assert state["volume_type"] == DEFAULT_VOLUME_TYPE
        assert state["max_size"] == 10

    @pytest.mark.asyncio
    async def test_unsupported_volume_type(self, provider, fake_api):
        with pytest.raises(ValidationError):
            await provider.volume().apply({**self.DESIRED, "volume_type": "NFS"})
        assert fake_api.mutations == []

    @pytest.mark.asyncio
    async def test_rename_updates_in_place(self, provider, fake_api):
        volume = await provider.volume().apply(dict(self.DESIRED))

        state = await provider.volume().apply({**self.DESIRED, "id": volume["id"], "name": "data-2"})

        assert state["id"] == volume["id"]
        assert state["name"] == "data-2"
        assert fake_api.mutations[-1] == ("update", "volume", volume["id"])

    @pytest.mark.asyncio
    async def test_resize_requires_replace(self, provider):
        volume = await provider.volume().apply(dict(self.DESIRED))

        plan = await provider.volume().plan({**self.DESIRED, "id": volume["id"], "max_size": 20})

        assert plan.requires_replace is True

    @pytest.mark.asyncio
    async def test_import_requires_id(self, provider):
        volume = await provider.volume().apply(dict(self.DESIRED))

        with pytest.raises(InvalidReferenceError):
            await provider.volume().import_state("data")
        assert (await provider.volume().import_state(volume["id"]))["name"] == "data"
