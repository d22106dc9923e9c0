"""Tests for the scene manifest loader."""

import tempfile
from pathlib import Path

import pytest
import yaml

from motioncompose.easing import Easing
from motioncompose.errors import ConstructionError
from motioncompose.manifest import collect_asset_paths, load_manifest, validate_paths
from motioncompose.scene import Circle, Color, ImageObject, Rect, StyleFlags, TextObject, Vec2


def _write_manifest(content: dict) -> str:
    """Write a manifest dict to a temp YAML file, return path."""
    f = tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False)
    yaml.dump(content, f)
    f.close()
    return f.name


def _minimal_manifest(**overrides):
    """Return a minimal valid manifest dict with no layers."""
    m = {
        "video": {"duration": 10, "fps": 30},
        "colors": {"accent": "#e04c77"},
        "layers": [],
    }
    m.update(overrides)
    return m


def _layer(clips, **extra):
    layer = {"name": "main", "clips": clips}
    layer.update(extra)
    return layer


def _clip(obj=None, start=0, end=5, transform=None):
    clip = {"start": start, "end": end, "object": obj or {"type": "circle", "radius": 10}}
    if transform is not None:
        clip["transform"] = transform
    return clip


class TestVideoSettings:
    def test_defaults(self):
        config = load_manifest(_write_manifest(_minimal_manifest()))
        assert config["video"]["resolution"] == (800, 600)
        assert config["video"]["background"] == Color(16, 16, 20)
        assert config["timeline"].duration == 10.0
        assert config["timeline"].fps == 30

    def test_missing_video_section_raises(self):
        with pytest.raises(ValueError, match="'video'"):
            load_manifest(_write_manifest({"layers": []}))

    def test_missing_fps_raises(self):
        path = _write_manifest(_minimal_manifest(video={"duration": 5}))
        with pytest.raises(ValueError, match="video.fps"):
            load_manifest(path)

    def test_bad_duration_is_construction_error(self):
        path = _write_manifest(_minimal_manifest(video={"duration": 0, "fps": 30}))
        with pytest.raises(ConstructionError, match="duration"):
            load_manifest(path)

    def test_bad_resolution_raises(self):
        path = _write_manifest(_minimal_manifest(video={"duration": 5, "fps": 30, "resolution": [1]}))
        with pytest.raises(ValueError, match="resolution"):
            load_manifest(path)

    def test_empty_sections_are_allowed(self):
        path = _write_manifest({"video": {"duration": 5, "fps": 24}, "layers": None, "audio": None})
        config = load_manifest(path)
        assert config["timeline"].layers == ()
        assert config["music"] is None
        assert config["sfx"] == []


class TestLayers:
    def test_objects_are_built(self):
        clips = [
            _clip({"type": "circle", "radius": 12, "color": "accent"}),
            _clip({"type": "rect", "width": 40, "height": 20, "color": [1, 2, 3]}),
            _clip({"type": "image", "path": "/tmp/logo.png"}),
            _clip({"type": "text", "text": "**Hi** there", "font_size": 32, "max_width": 200}),
        ]
        config = load_manifest(_write_manifest(_minimal_manifest(layers=[_layer(clips)])))
        objects = [c.object for c in config["timeline"].layers[0].clips]

        assert objects[0] == Circle(12.0, Color(224, 76, 119))
        assert objects[1] == Rect(40.0, 20.0, Color(1, 2, 3))
        assert objects[2] == ImageObject(Path("/tmp/logo.png"))
        assert isinstance(objects[3], TextObject)
        assert objects[3].text.runs[0].style == StyleFlags(bold=True)
        assert objects[3].font_size == 32.0
        assert objects[3].max_width == 200.0

    def test_unknown_object_type_raises(self):
        layers = [_layer([_clip({"type": "hexagon"})])]
        with pytest.raises(ValueError, match="unknown object type 'hexagon'"):
            load_manifest(_write_manifest(_minimal_manifest(layers=layers)))

    def test_missing_object_field_raises_with_context(self):
        layers = [_layer([_clip({"type": "rect", "width": 10})])]
        with pytest.raises(ValueError, match=r"Layer 0 \(main\) clip 0: missing required field 'height'"):
            load_manifest(_write_manifest(_minimal_manifest(layers=layers)))

    def test_clip_past_duration_raises_with_context(self):
        layers = [_layer([_clip(start=8, end=12)])]
        with pytest.raises(ConstructionError, match="clip 0"):
            load_manifest(_write_manifest(_minimal_manifest(layers=layers)))

    def test_z_must_be_integer(self):
        layers = [_layer([], z="top")]
        with pytest.raises(ValueError, match="z must be an integer"):
            load_manifest(_write_manifest(_minimal_manifest(layers=layers)))

    def test_z_controls_draw_order(self):
        layers = [
            {"name": "L0", "clips": []},
            {"name": "L1", "z": 5, "clips": []},
            {"name": "L2", "clips": []},
        ]
        config = load_manifest(_write_manifest(_minimal_manifest(layers=layers)))
        assert [layer.name for layer in config["timeline"].draw_order()] == ["L0", "L2", "L1"]

    def test_unnamed_layer_gets_index_name(self):
        config = load_manifest(_write_manifest(_minimal_manifest(layers=[{"clips": []}])))
        assert config["timeline"].layers[0].name == "layer-0"

    def test_unknown_font_style_raises(self):
        obj = {"type": "text", "text": "x", "font": {"heavy": "/f.ttf"}}
        layers = [_layer([_clip(obj)])]
        with pytest.raises(ValueError, match="unknown font style"):
            load_manifest(_write_manifest(_minimal_manifest(layers=layers)))


class TestTransforms:
    def test_constant_and_keyframed_properties(self):
        transform = {
            "position": [10, -20],
            "opacity": [
                {"time": 0, "value": 0},
                {"time": 1, "value": 1, "easing": "ease_out_cubic"},
            ],
        }
        layers = [_layer([_clip(transform=transform)])]
        config = load_manifest(_write_manifest(_minimal_manifest(layers=layers)))
        animated = config["timeline"].layers[0].clips[0].transform

        assert animated.position.evaluate(3.0) == Vec2(10.0, -20.0)
        assert animated.opacity.keyframes[1].easing is Easing.EASE_OUT_CUBIC
        assert animated.evaluate(0.5).opacity == pytest.approx(0.875)
        assert animated.evaluate(0.5).scale == Vec2(1.0, 1.0)

    def test_vec2_dict_form(self):
        transform = {"scale": {"x": 2, "y": 3}}
        layers = [_layer([_clip(transform=transform)])]
        config = load_manifest(_write_manifest(_minimal_manifest(layers=layers)))
        assert config["timeline"].layers[0].clips[0].transform.evaluate(0).scale == Vec2(2.0, 3.0)

    def test_unknown_property_raises(self):
        layers = [_layer([_clip(transform={"skew": 3})])]
        with pytest.raises(ValueError, match="unknown transform"):
            load_manifest(_write_manifest(_minimal_manifest(layers=layers)))

    def test_unknown_easing_raises(self):
        transform = {"rotation": [{"time": 0, "value": 0}, {"time": 1, "value": 90, "easing": "bounce"}]}
        layers = [_layer([_clip(transform=transform)])]
        with pytest.raises(ValueError, match="Unknown easing"):
            load_manifest(_write_manifest(_minimal_manifest(layers=layers)))

    def test_unordered_keyframes_raise_with_context(self):
        transform = {"rotation": [{"time": 1, "value": 0}, {"time": 0, "value": 90}]}
        layers = [_layer([_clip(transform=transform)])]
        with pytest.raises(ConstructionError, match="rotation: keyframe"):
            load_manifest(_write_manifest(_minimal_manifest(layers=layers)))

    @pytest.mark.parametrize("prop", ["opacity", "rotation", "position"])
    def test_empty_keyframe_list_raises_with_context(self, prop):
        layers = [_layer([_clip(transform={prop: []})])]
        with pytest.raises(ConstructionError, match=rf"clip 0 {prop}: .*at least one keyframe"):
            load_manifest(_write_manifest(_minimal_manifest(layers=layers)))


class TestVideosAndAudio:
    def test_path_variables_resolved(self):
        m = _minimal_manifest(
            paths={"assets": "/data/assets"},
            videos=[{"path": "${assets}/a.mp4", "start": 0, "end": 6, "trim_start": 1}],
            audio={
                "music": {"path": "${assets}/bg.mp3", "gain": 0.25},
                "sfx": [{"path": "${assets}/hit.ogg", "time": 2.5, "gain": 0.7}],
            },
        )
        config = load_manifest(_write_manifest(m))

        clip = config["videos"][0]
        assert clip.path == Path("/data/assets/a.mp4")
        assert clip.trim_start == 1.0
        assert clip.trim_end is None

        music = config["music"]
        assert music.path == Path("/data/assets/bg.mp3")
        assert (music.start, music.end) == (0.0, 10.0)
        assert music.looped is True
        assert music.gain == 0.25

        assert config["sfx"][0].path == Path("/data/assets/hit.ogg")
        assert config["sfx"][0].time == 2.5

    def test_unknown_path_variable_raises(self):
        m = _minimal_manifest(videos=[{"path": "${nope}/a.mp4", "start": 0, "end": 1}])
        with pytest.raises(ValueError, match="Unknown path variable"):
            load_manifest(_write_manifest(m))

    def test_bad_video_window_raises_with_context(self):
        m = _minimal_manifest(videos=[{"path": "/a.mp4", "start": 4, "end": 2}])
        with pytest.raises(ConstructionError, match="Video 0"):
            load_manifest(_write_manifest(m))

    def test_sfx_requires_time(self):
        m = _minimal_manifest(audio={"music": {"path": "/bg.mp3"}, "sfx": [{"path": "/a.wav"}]})
        with pytest.raises(ValueError, match="SFX 0: missing required field 'time'"):
            load_manifest(_write_manifest(m))

    def test_inverted_music_window_raises(self):
        m = _minimal_manifest(audio={"music": {"path": "/bg.mp3", "start": 5, "end": 2}})
        with pytest.raises(ConstructionError, match="Music: music window"):
            load_manifest(_write_manifest(m))

    def test_negative_music_gain_raises(self):
        m = _minimal_manifest(audio={"music": {"path": "/bg.mp3", "gain": -0.5}})
        with pytest.raises(ConstructionError, match="Music: music gain"):
            load_manifest(_write_manifest(m))

    def test_music_starting_after_project_raises(self):
        m = _minimal_manifest(audio={"music": {"path": "/bg.mp3", "start": 12, "end": 15}})
        with pytest.raises(ConstructionError, match="Music: starts at 12.0s"):
            load_manifest(_write_manifest(m))

    def test_negative_sfx_time_raises_with_context(self):
        m = _minimal_manifest(audio={
            "music": {"path": "/bg.mp3"},
            "sfx": [{"path": "/a.wav", "time": 1}, {"path": "/a.wav", "time": -1}],
        })
        with pytest.raises(ConstructionError, match="SFX 1: SFX time must be >= 0"):
            load_manifest(_write_manifest(m))


class TestValidatePaths:
    def test_collects_every_asset_once(self):
        obj_image = {"type": "image", "path": "/tmp/img.png"}
        obj_text = {"type": "text", "text": "x", "font": {"regular": "/tmp/f.ttf", "bold": "/tmp/f.ttf"}}
        m = _minimal_manifest(
            layers=[_layer([_clip(obj_image), _clip(obj_text), _clip(obj_image)])],
            videos=[{"path": "/tmp/a.mp4", "start": 0, "end": 1}],
            audio={"music": {"path": "/tmp/bg.mp3"}, "sfx": [{"path": "/tmp/s.wav", "time": 1}]},
        )
        config = load_manifest(_write_manifest(m))
        assert collect_asset_paths(config) == [
            Path("/tmp/img.png"), Path("/tmp/f.ttf"), Path("/tmp/a.mp4"),
            Path("/tmp/bg.mp3"), Path("/tmp/s.wav"),
        ]

    def test_missing_files_listed(self, tmp_path):
        present = tmp_path / "img.png"
        present.write_bytes(b"")
        m = _minimal_manifest(
            layers=[_layer([_clip({"type": "image", "path": str(present)})])],
            videos=[{"path": str(tmp_path / "gone.mp4"), "start": 0, "end": 1}],
            audio={"music": {"path": str(tmp_path / "gone.mp3")}},
        )
        config = load_manifest(_write_manifest(m))
        with pytest.raises(FileNotFoundError, match="Missing 2 file") as exc_info:
            validate_paths(config)
        assert "gone.mp4" in str(exc_info.value)
        assert "img.png" not in str(exc_info.value)

    def test_all_present_passes(self):
        config = load_manifest(_write_manifest(_minimal_manifest()))
        validate_paths(config)


class TestDemoManifest:
    def test_demo_scene_loads(self):
        demo = Path(__file__).resolve().parent.parent / "examples" / "demo-scene.yaml"
        config = load_manifest(demo)
        timeline = config["timeline"]
        assert [layer.name for layer in timeline.draw_order()] == [
            "background", "motion", "title",
        ]
        assert len(config["videos"]) == 3
        assert len(config["sfx"]) == 3
