import pytest

from msdf_atlasgen.cli import build_parser, main, parse_settings
from msdf_atlasgen.config import (
    AtlasSettings,
    CodepointRange,
    FieldMode,
    TextureDimensions,
    load_settings,
    parse_codepoint_range,
    parse_mode,
    parse_texture_size,
    settings_from_mapping,
)
from msdf_atlasgen.errors import AtlasError, SettingsError


def test_defaults():
    s = AtlasSettings()
    assert s.codepoint_ranges == (CodepointRange(0, 65536),)
    assert s.texture == TextureDimensions(2048, 2048)
    assert (s.max_char_height, s.spacing, s.smooth_pixels, s.range) == (32, 2, 2, 1.0)
    assert s.mode is FieldMode.MSDF
    assert not s.auto_height and not s.use_spans
    assert s.font_file_name == "UbuntuMono-R.ttf"
    assert s.output_file_name == "bitmap_font"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("65-67", (65, 67)),
        ("0x20-0x7f", (0x20, 0x7F)),
        ("65", (65, 66)),
        ("5-5", (5, 5)),
    ],
)
def test_parse_codepoint_range(text, expected):
    r = parse_codepoint_range(text)
    assert (r.begin, r.end) == expected


@pytest.mark.parametrize("text", ["abc", "10-5", "-3", "1-x", ""])
def test_parse_codepoint_range_errors(text):
    with pytest.raises(SettingsError):
        parse_codepoint_range(text)


def test_codepoint_range_is_half_open():
    assert list(parse_codepoint_range("65-68")) == [65, 66, 67]
    assert str(CodepointRange(65, 68)) == "65-68"


def test_parse_texture_size():
    assert parse_texture_size("512x256") == TextureDimensions(512, 256)
    assert str(parse_texture_size("1024X1024")) == "1024x1024"
    for bad in ("512", "0x0", "ax4", "4x4x4"):
        with pytest.raises(SettingsError):
            parse_texture_size(bad)


def test_parse_mode():
    assert parse_mode("SDF") is FieldMode.SDF
    assert FieldMode.MSDF.channels == 3
    assert FieldMode.PSDF.channels == 1
    with pytest.raises(SettingsError, match="Unknown font mode"):
        parse_mode("bitmap")


def test_settings_from_mapping():
    s = settings_from_mapping({
        "code-range": ["32-127", "0x400-0x500"],
        "texture_size": "512x512",
        "char-height": 48,
        "auto-height": "yes",
        "mode": "psdf",
        "range": 4,
        "font": None,
    })
    assert s.codepoint_ranges == (CodepointRange(32, 127), CodepointRange(0x400, 0x500))
    assert s.texture == TextureDimensions(512, 512)
    assert s.max_char_height == 48
    assert s.auto_height is True
    assert s.mode is FieldMode.PSDF
    assert s.range == 4.0
    assert s.font_file_name == "UbuntuMono-R.ttf"


@pytest.mark.parametrize(
    "values",
    [{"colour": "red"}, {"spacing": -1}, {"char-height": 0}, {"range": 0}, {"use-spans": "maybe"}, {"char-height": "tall"}],
)
def test_settings_from_mapping_errors(values):
    with pytest.raises(SettingsError):
        settings_from_mapping(values)


def test_settings_errors_are_value_errors():
    assert issubclass(SettingsError, AtlasError)
    assert issubclass(SettingsError, ValueError)


def test_with_char_height_keeps_other_settings():
    s = AtlasSettings(spacing=5)
    t = s.with_char_height(99)
    assert (t.max_char_height, t.spacing) == (99, 5)
    assert s.max_char_height == 32


def test_load_settings(tmp_path):
    path = tmp_path / "atlas.yaml"
    path.write_text(
        "code-range:\n"
        "  - 65-91\n"
        "texture-size: 256x128\n"
        "use-spans: yes\n"
        "smooth-pixels: 4\n"
    )
    s = load_settings(path)
    assert s.codepoint_ranges == (CodepointRange(65, 91),)
    assert s.texture == TextureDimensions(256, 128)
    assert s.use_spans is True
    assert s.smooth_pixels == 4


def test_load_settings_errors(tmp_path):
    with pytest.raises(SettingsError, match="Could not read"):
        load_settings(tmp_path / "missing.yaml")

    not_a_mapping = tmp_path / "list.yaml"
    not_a_mapping.write_text("- 1\n- 2\n")
    with pytest.raises(SettingsError, match="mapping"):
        load_settings(not_a_mapping)

    broken = tmp_path / "broken.yaml"
    broken.write_text("mode: [unclosed\n")
    with pytest.raises(SettingsError, match="Invalid YAML"):
        load_settings(broken)


def test_empty_config_is_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_settings(path) == AtlasSettings()


# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------

def test_parse_settings_short_flags():
    s = parse_settings(["-C", "65-91", "-C", "97-123", "-T", "512x512", "-M", "sdf", "-L", "40",
                        "-S", "3", "-R", "2.5", "-F", "font.otf", "-O", "out/font", "--spacing", "1",
                        "--auto-height", "--use-spans"])
    assert s.codepoint_ranges == (CodepointRange(65, 91), CodepointRange(97, 123))
    assert s.texture == TextureDimensions(512, 512)
    assert s.mode is FieldMode.SDF
    assert (s.max_char_height, s.smooth_pixels, s.spacing, s.range) == (40, 3, 1, 2.5)
    assert (s.font_file_name, s.output_file_name) == ("font.otf", "out/font")
    assert s.auto_height and s.use_spans


def test_command_line_overrides_config(tmp_path):
    path = tmp_path / "atlas.yaml"
    path.write_text("char-height: 64\nmode: sdf\nauto-height: true\n")
    s = parse_settings(["--config", str(path), "-L", "20"])
    assert s.max_char_height == 20
    assert s.mode is FieldMode.SDF
    assert s.auto_height is True


def test_no_flags_gives_defaults():
    assert parse_settings([]) == AtlasSettings()


def test_main_reports_errors(tmp_path, capsys):
    assert main(["-F", str(tmp_path / "missing.ttf"), "-O", str(tmp_path / "font")]) == 1
    assert capsys.readouterr().out.startswith("Error: Could not open font")

    assert main(["-T", "big"]) == 1
    assert "Error: Texture size" in capsys.readouterr().out


def test_main_success(font_path, tmp_path):
    status = main([
        "-F", str(font_path),
        "-O", str(tmp_path / "font"),
        "-C", "65-67",
        "-T", "64x64",
        "-L", "16",
        "-M", "sdf",
        "--use-spans",
    ])
    assert status == 0
    assert (tmp_path / "font_desc.c").exists()
    assert (tmp_path / "font_img.c").exists()
    assert (tmp_path / "font_img.png").exists()


def test_zero_char_height_is_rejected(font_path, tmp_path, capsys):
    path = tmp_path / "atlas.yaml"
    path.write_text("char-height: 0\n")
    with pytest.raises(SettingsError, match="char-height must be positive"):
        load_settings(path)

    status = main(["-C", "65-67", "-L", "0", "-F", str(font_path), "-O", str(tmp_path / "font")])
    assert status == 1
    assert capsys.readouterr().out.startswith("Error: char-height must be positive")
    assert list(tmp_path.iterdir()) == [path]


def test_range_help_names_font_units():
    assert "font units" in build_parser().format_help()
