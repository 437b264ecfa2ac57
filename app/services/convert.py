"""Adapters for the external image and book converters."""
import enum
import logging
import shlex
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

BARCODE_MODEL_FILE = "YOLOV8s_Barcode_Detection.onnx"
DEFAULT_BOOK_SIZES = [18]


class ConversionInputError(Exception):
    """The upload or options were rejected by the converter."""


class ConversionError(Exception):
    """The converter could not run or produce an artifact."""


class FitMode(str, enum.Enum):
    width = "width"
    contain = "contain"
    cover = "cover"
    stretch = "stretch"
    integer = "integer"


class DitherMode(str, enum.Enum):
    bayer = "bayer"
    none = "none"


class RegionMode(str, enum.Enum):
    auto = "auto"
    none = "none"
    crisp = "crisp"
    barcode = "barcode"


@dataclass
class ImageOptions:
    fit: FitMode = FitMode.width
    dither: DitherMode = DitherMode.bayer
    region_mode: RegionMode = RegionMode.auto
    invert: bool = False
    trimg_version: int = 2
    yolo_model: Optional[Path] = None


@dataclass(frozen=True)
class FontPaths:
    regular: Path
    bold: Optional[Path] = None
    italic: Optional[Path] = None
    bold_italic: Optional[Path] = None


def _parse_enum(enum_cls, value: Optional[str], default):
    try:
        return enum_cls((value or "").strip().lower())
    except ValueError:
        return default


def parse_fit(value: Optional[str]) -> FitMode:
    return _parse_enum(FitMode, value, FitMode.width)


def parse_dither(value: Optional[str]) -> DitherMode:
    return _parse_enum(DitherMode, value, DitherMode.bayer)


def parse_region(value: Optional[str]) -> RegionMode:
    return _parse_enum(RegionMode, value, RegionMode.auto)


def parse_trimg_version(value: int) -> int:
    return 2 if value == 2 else 1


def parse_sizes(value: str) -> list[int]:
    """Parse ``"18, 24,x"`` into ``[18, 24]``; falls back to the default size."""
    sizes = []
    for part in value.split(","):
        part = part.strip()
        if part.isascii() and part.isdigit() and 0 < int(part) <= 65535:
            sizes.append(int(part))
    return sizes or list(DEFAULT_BOOK_SIZES)


def sanitize_filename(name: Optional[str], fallback: str) -> str:
    if name is None:
        return fallback
    kept = "".join(c for c in name.strip() if (c.isascii() and c.isalnum()) or c in "._- ")
    kept = kept.strip()
    return kept or fallback


def build_image_options(
    fit: str,
    dither: str,
    region: str,
    invert: bool,
    trimg_version: int,
    models_dir: str | Path,
) -> ImageOptions:
    options = ImageOptions(
        fit=parse_fit(fit),
        dither=parse_dither(dither),
        region_mode=parse_region(region),
        invert=invert,
        trimg_version=parse_trimg_version(trimg_version),
    )
    model_path = Path(models_dir) / BARCODE_MODEL_FILE
    if model_path.exists():
        options.yolo_model = model_path
    return options


def resolve_font_paths(font_key: str, fonts_dir: str | Path) -> Optional[FontPaths]:
    """Map a font key to the font files on disk; None if unknown or missing."""
    if font_key.strip().lower() != "bookerly":
        return None

    base = Path(fonts_dir)
    regular = base / "Bookerly.ttf"
    if not regular.exists():
        return None

    def optional(file_name: str) -> Optional[Path]:
        path = base / file_name
        return path if path.exists() else None

    return FontPaths(
        regular=regular,
        bold=optional("Bookerly Bold.ttf"),
        italic=optional("Bookerly Italic.ttf"),
        bold_italic=optional("Bookerly Bold Italic.ttf"),
    )


class ImageConverter(Protocol):
    def convert(self, data: bytes, options: ImageOptions) -> bytes: ...

    def write_artifact(self, path: Path, artifact: bytes) -> None: ...


class BookConverter(Protocol):
    def convert(self, input_path: Path, output_path: Path, sizes: list[int], fonts: FontPaths) -> None: ...


def _run(argv: list[str], timeout: int) -> subprocess.CompletedProcess:
    logger.debug("Running converter: %s", shlex.join(argv))
    try:
        return subprocess.run(argv, capture_output=True, timeout=timeout, check=False)
    except FileNotFoundError as exc:
        raise ConversionError(f"Converter {argv[0]} not installed") from exc
    except subprocess.TimeoutExpired as exc:
        raise ConversionError(f"Converter {argv[0]} timed out") from exc
    except OSError as exc:
        raise ConversionError(f"Converter {argv[0]} failed to start: {exc}") from exc


class CommandImageConverter:
    """Runs the image converter command line tool on a temporary copy of the upload."""

    def __init__(self, command: str, timeout_seconds: int = 120):
        self.command = shlex.split(command)
        self.timeout_seconds = timeout_seconds

    def arguments(self, options: ImageOptions) -> list[str]:
        args = [
            "--fit", options.fit.value,
            "--dither", options.dither.value,
            "--region", options.region_mode.value,
            "--trimg-version", str(options.trimg_version),
        ]
        if options.invert:
            args.append("--invert")
        if options.yolo_model is not None:
            args += ["--yolo-model", str(options.yolo_model)]
        return args

    def convert(self, data: bytes, options: ImageOptions) -> bytes:
        with tempfile.TemporaryDirectory(prefix="tern-image-") as workdir:
            source = Path(workdir) / "input"
            target = Path(workdir) / "output.tri"
            source.write_bytes(data)
            argv = self.command + self.arguments(options) + [str(source), str(target)]
            result = _run(argv, self.timeout_seconds)
            if result.returncode != 0:
                logger.info("Image conversion rejected: %s", result.stderr.decode(errors="replace").strip())
                raise ConversionInputError("Image could not be converted")
            try:
                return target.read_bytes()
            except OSError as exc:
                raise ConversionError("Image converter produced no output") from exc

    def write_artifact(self, path: Path, artifact: bytes) -> None:
        try:
            Path(path).write_bytes(artifact)
        except OSError as exc:
            raise ConversionError(f"Could not write {path}") from exc


class CommandBookConverter:
    """Runs the EPUB converter command line tool."""

    def __init__(self, command: str, timeout_seconds: int = 120):
        self.command = shlex.split(command)
        self.timeout_seconds = timeout_seconds

    def convert(self, input_path: Path, output_path: Path, sizes: list[int], fonts: FontPaths) -> None:
        args = ["--sizes", ",".join(str(size) for size in sizes), "--font-regular", str(fonts.regular)]
        for flag, path in (
            ("--font-bold", fonts.bold),
            ("--font-italic", fonts.italic),
            ("--font-bold-italic", fonts.bold_italic),
        ):
            if path is not None:
                args += [flag, str(path)]
        argv = self.command + args + [str(input_path), str(output_path)]
        result = _run(argv, self.timeout_seconds)
        if result.returncode != 0:
            logger.error("Book conversion failed: %s", result.stderr.decode(errors="replace").strip())
            raise ConversionError("Book could not be converted")
