"""
Tests for lottie-bundle core: vocabulary, codec, entities, registry,
schemas and the manifest projector.

Run with: pytest tests/test_core.py -v
"""

import httpx
import pytest

from lottie_bundle.core import (
    Animation, AssetCodec, AssetRegistry, AudioAsset, CURRENT_LAYOUT,
    DanglingReferenceError, DuplicateIdentityError, EntryKind, ErrorCode,
    FetchError, FontAsset, FormatVersion, GlobalInputs, ImageAsset,
    InvalidEntityError, LEGACY_LAYOUT, PlayMode, SchemaValidationError,
    StateMachine, Theme,
    is_audio_asset, is_font_definition, is_image_asset,
)
from lottie_bundle.plugins.duplicate_images import hamming
from lottie_bundle.projector import project_manifest

from factories import (
    GLOBAL_INPUTS, THEME, data_url, font_def, image_entry, lottie,
    lottie_with_images, mp3_bytes, png_bytes, state_machine, ttf_bytes,
)


# ─────────────────────────────────────────────────────────────
# Vocabulary
# ─────────────────────────────────────────────────────────────

class TestFormatVersion:
    def test_sniff_current(self):
        assert FormatVersion.from_manifest({"version": "2"}) == FormatVersion.CURRENT

    def test_sniff_legacy(self):
        assert FormatVersion.from_manifest({"version": "1.0"}) == FormatVersion.LEGACY
        assert FormatVersion.from_manifest({}) == FormatVersion.LEGACY

    def test_aliases(self):
        assert FormatVersion.from_string("v1") == FormatVersion.LEGACY
        assert FormatVersion.from_string(2) == FormatVersion.CURRENT

    def test_unknown_raises(self):
        with pytest.raises(ValueError):
            FormatVersion.from_string("3")


class TestArchiveLayout:
    def test_current_paths(self):
        assert CURRENT_LAYOUT.animation_path("bull") == "a/bull.json"
        assert CURRENT_LAYOUT.image_path("image_0.png") == "i/image_0.png"
        assert CURRENT_LAYOUT.audio_path("audio_1.mpeg") == "u/audio_1.mpeg"
        assert CURRENT_LAYOUT.theme_path("dark") == "t/dark.json"
        assert CURRENT_LAYOUT.state_machine_path("sm") == "s/sm.json"

    def test_legacy_paths(self):
        assert LEGACY_LAYOUT.animation_path("bull") == "animations/bull.json"
        assert LEGACY_LAYOUT.image_path("img.png") == "images/img.png"
        assert LEGACY_LAYOUT.audio_path("a.mp3") == "audio/a.mp3"
        assert not LEGACY_LAYOUT.packs_themes
        with pytest.raises(ValueError):
            LEGACY_LAYOUT.theme_path("dark")

    def test_classify(self):
        assert CURRENT_LAYOUT.classify("manifest.json") == (EntryKind.MANIFEST, "manifest.json")
        assert CURRENT_LAYOUT.classify("a/bull.json") == (EntryKind.ANIMATION, "bull")
        assert CURRENT_LAYOUT.classify("i/x.png") == (EntryKind.IMAGE, "x.png")
        assert CURRENT_LAYOUT.classify("s/sm.json") == (EntryKind.STATE_MACHINE, "sm")
        assert CURRENT_LAYOUT.classify("animations/bull.json") == (None, "animations/bull.json")
        assert LEGACY_LAYOUT.classify("t/dark.json")[0] is None
        assert CURRENT_LAYOUT.classify("a/nested/x.json")[0] is None

    def test_fonts_and_global_inputs(self):
        assert CURRENT_LAYOUT.font_path("Roboto.ttf") == "f/Roboto.ttf"
        assert CURRENT_LAYOUT.global_inputs_path("controls") == "g/controls.json"
        assert CURRENT_LAYOUT.classify("f/Roboto.ttf") == (EntryKind.FONT, "Roboto.ttf")
        assert CURRENT_LAYOUT.classify("g/controls.json") == (EntryKind.GLOBAL_INPUTS, "controls")
        assert not LEGACY_LAYOUT.packs_fonts
        assert LEGACY_LAYOUT.classify("f/Roboto.ttf")[0] is None
        with pytest.raises(ValueError):
            LEGACY_LAYOUT.font_path("Roboto.ttf")
        with pytest.raises(ValueError):
            LEGACY_LAYOUT.global_inputs_path("controls")


class TestAssetShapes:
    def test_image(self):
        assert is_image_asset({"id": "i", "w": 1, "h": 1, "p": "x.png"})
        assert not is_image_asset({"id": "comp", "w": 1, "h": 1, "p": "x", "xt": 1})

    def test_audio(self):
        assert is_audio_asset({"id": "a", "p": "a.mp3", "u": "", "e": 1})
        assert not is_audio_asset({"id": "a", "p": "a.mp3", "u": ""})
        assert not is_audio_asset({"id": "i", "w": 1, "h": 1, "p": "x", "u": "", "e": 0})

    def test_font(self):
        assert is_font_definition(font_def("Roboto"))
        assert is_font_definition({"fName": "Roboto", "fPath": "/f/Roboto.ttf"})
        assert not is_font_definition({"fName": "Arial", "fFamily": "Arial"})
        assert not is_font_definition({"fName": "Arial", "fPath": ""})


# ─────────────────────────────────────────────────────────────
# AssetCodec
# ─────────────────────────────────────────────────────────────

class TestAssetCodec:
    def setup_method(self):
        self.codec = AssetCodec()

    def test_encode_decode(self):
        raw = png_bytes(1)
        url = self.codec.encode(raw)
        assert url.startswith("data:image/png;base64,")
        assert self.codec.decode(url) == raw

    @pytest.mark.parametrize("raw,ext", [
        (png_bytes(1),                                  "png"),
        (b"\xff\xd8\xff\xe0" + b"\x00" * 16,            "jpeg"),
        (b"GIF89a" + b"\x00" * 16,                      "gif"),
        (b"BM" + b"\x00" * 16,                          "bmp"),
        (b"RIFF\x00\x00\x00\x00WEBPVP8 ",               "webp"),
        (b"<?xml version='1.0'?><svg/>",                "svg"),
        (mp3_bytes(),                                   "mpeg"),
        (ttf_bytes(),                                   "ttf"),
        (b"wOF2" + b"\x00" * 16,                        "woff2"),
    ])
    def test_detect_extension_from_magic(self, raw, ext):
        assert self.codec.detect_extension(data_url(raw, "application/octet-stream")) == ext

    def test_detect_extension_from_header(self):
        assert self.codec.detect_extension(data_url(b"\x00\x01\x02", "image/gif")) == "gif"

    def test_detect_extension_default(self):
        assert self.codec.detect_extension(data_url(b"\x00\x01\x02", "application/x-foo")) == "png"

    @pytest.mark.asyncio
    async def test_fetch(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"ok": True}))
        codec = AssetCodec(transport=transport)
        assert await codec.fetch_json("https://example.com/a.json") == {"ok": True}

    @pytest.mark.asyncio
    async def test_fetch_http_error_is_wrapped(self):
        codec = AssetCodec(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
        with pytest.raises(FetchError) as exc:
            await codec.fetch("https://example.com/missing.json")
        assert "404" in str(exc.value)
        assert exc.value.code == ErrorCode.INVALID_URL

    @pytest.mark.asyncio
    async def test_fetch_timeout_is_wrapped(self):
        def handler(request):
            raise httpx.ConnectTimeout("slow", request=request)
        codec = AssetCodec(timeout=0.1, transport=httpx.MockTransport(handler))
        with pytest.raises(FetchError, match="timed out"):
            await codec.fetch("https://example.com/slow.json")

    @pytest.mark.asyncio
    async def test_fetch_rejects_non_http(self):
        with pytest.raises(FetchError):
            await self.codec.fetch("ftp://example.com/a.json")


# ─────────────────────────────────────────────────────────────
# Entities
# ─────────────────────────────────────────────────────────────

class TestAnimation:
    def test_requires_id(self):
        with pytest.raises(InvalidEntityError):
            Animation(id="", data=lottie())

    def test_requires_data_or_url(self):
        with pytest.raises(InvalidEntityError):
            Animation(id="a")

    def test_rejects_invalid_lottie(self):
        with pytest.raises(InvalidEntityError) as exc:
            Animation(id="a", data={"v": "5"})
        assert exc.value.code == ErrorCode.INVALID_ANIMATION

    def test_rejects_bad_url(self):
        with pytest.raises(InvalidEntityError):
            Animation(id="a", url="not a url")

    def test_url_sourced_is_unresolved(self):
        animation = Animation(id="a", url="https://example.com/a.json")
        assert not animation.resolved

    def test_play_mode_coerced(self):
        assert Animation(id="a", data=lottie(), play_mode="bounce").play_mode == PlayMode.BOUNCE

    def test_direction_validated(self):
        with pytest.raises(InvalidEntityError):
            Animation(id="a", data=lottie(), direction=2)

    def test_update_revalidates(self):
        animation = Animation(id="a", data=lottie())
        updated = animation.update(speed=2.0)
        assert updated.speed == 2.0 and animation.speed is None
        with pytest.raises(InvalidEntityError):
            animation.update(speed=-1)

    def test_playback_settings(self):
        animation = Animation(id="a", data=lottie(), loop=True, play_mode=PlayMode.BOUNCE, theme_color="#fff")
        assert animation.playback_settings() == {"loop": True, "playMode": "bounce", "themeColor": "#fff"}


class TestAssets:
    def test_requires_file_name(self):
        with pytest.raises(InvalidEntityError):
            ImageAsset(id="image_0", data=data_url(png_bytes(1)))

    def test_clone_is_fresh(self):
        image = ImageAsset(id="image_0", file_name="image_0.png", data=data_url(png_bytes(1)), excluded=True)
        clone = image.clone()
        assert clone is not image
        assert clone.file_name == image.file_name and clone.data == image.data
        assert not clone.excluded

    @pytest.mark.asyncio
    async def test_url_asset_fetched_once(self):
        calls = []

        def handler(request):
            calls.append(request.url)
            return httpx.Response(200, content=png_bytes(3))

        codec = AssetCodec(transport=httpx.MockTransport(handler))
        image = ImageAsset(id="i", file_name="i.png", url="https://example.com/i.png")
        assert await image.to_bytes(codec) == png_bytes(3)
        await image.to_bytes(codec)
        assert len(calls) == 1


class TestThemeAndStateMachine:
    def test_valid_theme(self):
        assert Theme(id="dark", data=THEME).resolved

    def test_invalid_theme_carries_issues(self):
        with pytest.raises(SchemaValidationError) as exc:
            Theme(id="dark", data={"rules": [{"id": "bg", "type": "Nope"}]})
        assert exc.value.code == ErrorCode.INVALID_THEME
        assert exc.value.issues and all("msg" in issue for issue in exc.value.issues)

    def test_state_machine_animation_ids(self):
        sm = StateMachine(id="sm", data=state_machine("bull"))
        assert sm.animation_ids == ["bull"]
        assert sm.initial_state == "idle"

    def test_invalid_state_machine(self):
        with pytest.raises(SchemaValidationError) as exc:
            StateMachine(id="sm", data={"states": []})
        assert exc.value.code == ErrorCode.INVALID_STATEMACHINE
        assert any(issue["path"] == "initial" for issue in exc.value.issues)

    def test_action_requires_input_name(self):
        doc = state_machine()
        doc["interactions"][0]["actions"] = [{"type": "Toggle"}]
        with pytest.raises(SchemaValidationError):
            StateMachine(id="sm", data=doc)


class TestGlobalInputs:
    def test_valid(self):
        inputs = GlobalInputs(id="controls", data=GLOBAL_INPUTS, name="Controls")
        assert inputs.get_input("speed") == {"type": "Numeric", "value": 1.5}
        assert inputs.get_input("missing") is None
        assert inputs.to_dict()["inputs"] == ["brand", "hovered", "speed"]

    def test_value_must_match_type(self):
        with pytest.raises(SchemaValidationError) as exc:
            GlobalInputs(id="controls", data={"speed": {"type": "Numeric", "value": "fast"}})
        assert exc.value.code == ErrorCode.INVALID_GLOBAL_INPUTS
        assert exc.value.kind == "global inputs"

    def test_unknown_type(self):
        with pytest.raises(SchemaValidationError):
            GlobalInputs(id="controls", data={"x": {"type": "Matrix", "value": []}})

    def test_binding_requires_ids(self):
        doc = {"brand": {"type": "Color", "value": [1, 0, 0, 1], "bindings": {"themes": [{"path": "value"}]}}}
        with pytest.raises(SchemaValidationError):
            GlobalInputs(id="controls", data=doc)

    def test_requires_id(self):
        with pytest.raises(InvalidEntityError):
            GlobalInputs(id="", data=GLOBAL_INPUTS)


# ─────────────────────────────────────────────────────────────
# AssetRegistry
# ─────────────────────────────────────────────────────────────

class TestAssetRegistry:
    def setup_method(self):
        self.reg = AssetRegistry()
        self.reg.add_animation(Animation(id="a", data=lottie()))
        self.reg.add_animation(Animation(id="b", data=lottie()))

    def _image(self, name: str, seed: int = 1) -> ImageAsset:
        return ImageAsset(id=name, file_name=f"{name}.png", data=data_url(png_bytes(seed)))

    def test_duplicate_id_leaves_registry_unchanged(self):
        with pytest.raises(DuplicateIdentityError):
            self.reg.add_animation(Animation(id="a", data=lottie(name="other")))
        assert len(self.reg.animations) == 2
        assert self.reg.get_animation("a").data["nm"] == "anim"

    def test_remove_unknown_is_noop(self):
        assert self.reg.remove_animation("nope") is None
        assert self.reg.remove_theme("nope") is None
        assert self.reg.remove_state_machine("nope") is None

    def test_insertion_order(self):
        self.reg.add_animation(Animation(id="0", data=lottie()))
        assert [a.id for a in self.reg.animations] == ["a", "b", "0"]

    def test_scoping_is_bidirectional(self):
        self.reg.add_theme(Theme(id="dark", data=THEME))
        self.reg.scope_theme("dark", "a")
        assert self.reg.themes_of("a") == ["dark"]
        assert self.reg.animations_for_theme("dark") == ["a"]
        self.reg.unscope_theme("dark", "a")
        assert self.reg.themes_of("a") == [] and self.reg.animations_for_theme("dark") == []

    def test_scope_unknown_raises(self):
        with pytest.raises(DanglingReferenceError):
            self.reg.scope_theme("ghost", "a")

    def test_remove_animation_unscopes(self):
        self.reg.add_theme(Theme(id="dark", data=THEME))
        self.reg.scope_theme("dark", "a")
        self.reg.remove_animation("a")
        assert self.reg.animations_for_theme("dark") == []

    def test_remove_theme_unscopes_and_clears_initial(self):
        self.reg.add_theme(Theme(id="dark", data=THEME))
        self.reg.replace_animation(self.reg.get_animation("a").update(initial_theme="dark"))
        self.reg.scope_theme("dark", "a")
        self.reg.scope_theme("dark", "b")
        self.reg.remove_theme("dark")
        assert self.reg.themes_of("a") == [] and self.reg.themes_of("b") == []
        assert self.reg.get_animation("a").initial_theme is None

    def test_shared_asset_ownership(self):
        image = self._image("shared")
        self.reg.attach_asset("a", image)
        self.reg.attach_asset("b", image)
        self.reg.attach_asset("b", image)
        assert self.reg.owners_of(image) == ["a", "b"]
        assert self.reg.images_of("b") == [image]
        assert self.reg.images == [image]

        self.reg.remove_animation("a")
        assert self.reg.owners_of(image) == ["b"]
        self.reg.detach_asset("b", image)
        assert self.reg.owners_of(image) == [] and self.reg.images == []

    def test_rename_rewrites_every_owner(self):
        image = self._image("img")
        for animation_id in ("a", "b"):
            entry = {"id": "img", "w": 1, "h": 1, "u": "/images/", "p": "img.png", "e": 0}
            self.reg.get_animation(animation_id).data["assets"].append(entry)
            self.reg.attach_asset(animation_id, image)

        self.reg.rename_asset(image, "image_1.png")
        assert image.file_name == "image_1.png"
        for animation_id in ("a", "b"):
            assert self.reg.get_animation(animation_id).data["assets"][0]["p"] == "image_1.png"

    def test_batch_rename_does_not_cross_wires(self):
        first, second = self._image("image_2", 1), self._image("image_1", 2)
        data = self.reg.get_animation("a").data
        for image in (first, second):
            data["assets"].append({"id": image.id, "w": 1, "h": 1, "u": "/images/", "p": image.file_name, "e": 0})
            self.reg.attach_asset("a", image)

        # swap the two names in one batch
        self.reg.rename_assets([(second, "image_2.png"), (first, "image_1.png")])
        paths = {entry["id"]: entry["p"] for entry in data["assets"]}
        assert paths == {"image_2": "image_1.png", "image_1": "image_2.png"}

    def test_replace_with_new_data_releases_assets(self):
        image = self._image("img")
        self.reg.attach_asset("a", image)
        self.reg.attach_asset("b", image)

        # same data object: ownership survives
        self.reg.replace_animation(self.reg.get_animation("a").update(name="A"))
        assert self.reg.images_of("a") == [image]

        self.reg.replace_animation(self.reg.get_animation("a").update(data=lottie()))
        assert self.reg.images_of("a") == []
        assert self.reg.owners_of(image) == ["b"]

    def test_font_rename_rewrites_font_path(self):
        font = FontAsset(id="Roboto", file_name="Roboto.ttf", data=data_url(ttf_bytes(), "font/ttf"))
        data = self.reg.get_animation("a").data
        data["fonts"] = {"list": [{"fName": "Roboto", "fPath": "/f/Roboto.ttf", "origin": 3}, {"fName": "Arial"}]}
        self.reg.attach_asset("a", font)

        self.reg.rename_asset(font, "font_1.ttf")
        assert data["fonts"]["list"][0]["fPath"] == "/f/font_1.ttf"
        assert data["fonts"]["list"][1] == {"fName": "Arial"}
        assert self.reg.fonts_of("a") == [font] and self.reg.fonts == [font]

    def test_global_inputs(self):
        self.reg.add_global_inputs(GlobalInputs(id="controls", data=GLOBAL_INPUTS))
        with pytest.raises(DuplicateIdentityError):
            self.reg.add_global_inputs(GlobalInputs(id="controls", data={}))
        assert [g.id for g in self.reg.global_inputs] == ["controls"]
        assert self.reg.get_global_inputs("controls").data == GLOBAL_INPUTS
        assert self.reg.remove_global_inputs("controls").id == "controls"
        assert self.reg.remove_global_inputs("controls") is None


# ─────────────────────────────────────────────────────────────
# Manifest projector
# ─────────────────────────────────────────────────────────────

class TestProjector:
    def setup_method(self):
        self.reg = AssetRegistry()
        self.reg.add_animation(Animation(id="a", data=lottie(), background="#000", loop=True))
        self.reg.add_animation(Animation(id="b", data=lottie(), default_active=True))
        self.reg.add_theme(Theme(id="dark", data=THEME))
        self.reg.scope_theme("dark", "a")
        self.reg.add_state_machine(StateMachine(id="sm", data=state_machine("a")))

    def test_current(self):
        manifest = project_manifest(self.reg, FormatVersion.CURRENT, generator="test")
        assert manifest == {
            "version": "2",
            "generator": "test",
            "animations": [
                {"id": "a", "background": "#000", "themes": ["dark"]},
                {"id": "b"},
            ],
            "themes": ["dark"],
            "stateMachines": ["sm"],
            "initial": {"animation": "b"},
        }

    def test_global_inputs_listed(self):
        self.reg.add_global_inputs(GlobalInputs(id="controls", data=GLOBAL_INPUTS, name="Controls"))
        self.reg.add_global_inputs(GlobalInputs(id="extra", data={}))
        current = project_manifest(self.reg, FormatVersion.CURRENT)
        assert current["globalInputs"] == [{"id": "controls", "name": "Controls"}, {"id": "extra"}]
        assert "globalInputs" not in project_manifest(self.reg, FormatVersion.LEGACY)

    def test_initial_only_when_exactly_one_active(self):
        self.reg.replace_animation(self.reg.get_animation("a").update(default_active=True))
        assert "initial" not in project_manifest(self.reg, FormatVersion.CURRENT)

    def test_legacy(self):
        manifest = project_manifest(
            self.reg, FormatVersion.LEGACY, generator="test",
            metadata={"author": "me", "keywords": "bull", "revision": 2},
        )
        assert manifest["version"] == "1"
        assert manifest["author"] == "me" and manifest["revision"] == 2
        assert manifest["animations"] == [{"id": "a", "loop": True}, {"id": "b"}]
        assert manifest["activeAnimationId"] == "b"
        assert "themes" not in manifest and "stateMachines" not in manifest

    def test_projection_is_pure(self):
        before = self.reg.summary()
        first = project_manifest(self.reg, FormatVersion.CURRENT)
        assert project_manifest(self.reg, FormatVersion.CURRENT) == first
        assert self.reg.summary() == before


# ─────────────────────────────────────────────────────────────
# Duplicate image distance
# ─────────────────────────────────────────────────────────────

class TestHamming:
    def test_hex_strings(self):
        assert hamming("abcd", "abcd") == 0
        assert hamming("abcd", "abce") == 1
        assert hamming("abcd", "dcba") == 4

    def test_length_difference_counts(self):
        assert hamming("abcd", "ab") == 2
        assert hamming("ab", "abcf") == 2
        assert hamming("", "ff") == 2

    def test_image_hashes(self):
        class _Hash:
            def __init__(self, bits):
                self.bits = bits

            def __sub__(self, other):
                return bin(self.bits ^ other.bits).count("1")

        assert hamming(_Hash(0b1010), _Hash(0b0110)) == 2
