# content/scanner.py
import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Optional

from canonlib.content.canonical_id import ensure_canonical_id, is_valid_canonical_id
from canonlib.content.document import parse_document, write_document
from canonlib.content.hasher import compute_content_hash
from canonlib.storage.models import CanonicalEntry, TranslationStatus, utc_now
from canonlib.storage.registry import ContentRegistry

logger = logging.getLogger(__name__)

CONTENT_EXTENSIONS = (".md", ".mdx")


@dataclass
class ScanResult:
    registry_updated: bool      = False
    files_updated:    list[str] = field(default_factory=list)
    registered:       list[str] = field(default_factory=list)
    errors:           list[str] = field(default_factory=list)


@dataclass
class ReconcileResult:
    removed:        list[str] = field(default_factory=list)
    marked_missing: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.removed or self.marked_missing)


@dataclass
class AuditResult:
    valid:    bool
    errors:   list[str]      = field(default_factory=list)
    warnings: list[str]      = field(default_factory=list)
    stats:    dict[str, int] = field(default_factory=dict)


@dataclass
class _ScannedFile:
    path:         Path
    location:     str
    canonical_id: str
    language:     str
    content_hash: str
    title:        str
    metadata:     dict
    translation_of: Optional[str] = None


class ContentScanner:
    """
    Recorre el árbol de contenido y mantiene el registry al día.

    - Asigna IDs canónicos a las unidades que no lo tienen
    - Registra originales nuevos y traducciones bajo su origen
    - Detecta cambios de hash en el origen y marca traducciones stale
    - Sigue renombres/movimientos: la identidad es el ID, no la ruta
    """

    def __init__(
        self,
        registry:     ContentRegistry,
        content_root: Path,
        languages:    list[str],
        collections:  Optional[list[str]] = None,
        infer_language_from_path: bool = True,
    ):
        self._registry     = registry
        self._content_root = Path(content_root)
        self._languages    = list(languages)
        self._collections  = list(collections) if collections else None
        self._infer        = infer_language_from_path

    # ------------------------------------------------------------------
    # Descubrimiento
    # ------------------------------------------------------------------

    def discover(self) -> list[Path]:
        """Todos los .md/.mdx bajo las colecciones configuradas, en orden estable."""
        if self._collections is None:
            roots = [self._content_root]
        else:
            roots = [self._content_root / name for name in self._collections]

        files: list[Path] = []
        for root in roots:
            if not root.is_dir():
                logger.debug("Colección inexistente, se ignora: %s", root)
                continue
            files.extend(
                p for p in root.rglob("*")
                if p.is_file() and p.suffix in CONTENT_EXTENSIONS
            )
        return sorted(files)

    def location_of(self, path: Path) -> str:
        return Path(path).relative_to(self._content_root).as_posix()

    # ------------------------------------------------------------------
    # Scan
    # ------------------------------------------------------------------

    def scan(self) -> ScanResult:
        """
        Dos pasadas: primero originales y después traducciones, para que
        una traducción siempre encuentre la entrada de su origen.
        """
        result = ScanResult()
        originals:    list[_ScannedFile] = []
        translations: list[_ScannedFile] = []

        for path in self.discover():
            location = self.location_of(path)
            try:
                scanned = self._read(path, location, result)
            except (OSError, ValueError) as e:
                logger.warning("No se pudo procesar %s: %s", location, e)
                result.errors.append(f"{location}: {e}")
                continue

            if scanned is None:
                continue
            if scanned.translation_of:
                translations.append(scanned)
            else:
                originals.append(scanned)

        for scanned in originals:
            if self._register_original(scanned, result):
                result.registry_updated = True

        for scanned in translations:
            if self._register_translation(scanned, result):
                result.registry_updated = True

        if result.registry_updated:
            self._registry.flush()
            logger.info("Registry actualizado: %d entradas", len(self._registry))

        return result

    def _read(self, path: Path, location: str, result: ScanResult) -> Optional[_ScannedFile]:
        raw      = path.read_text(encoding="utf-8")
        document = parse_document(raw)
        metadata = document.metadata

        translation_of = metadata.get("translationOf")
        if translation_of:
            # La traducción comparte la identidad de su origen
            translation_of = str(translation_of)
            canonical_id   = str(metadata.get("canonicalId") or translation_of)
            if not metadata.get("canonicalId"):
                metadata["canonicalId"] = canonical_id
                write_document(path, document)
                result.files_updated.append(location)
        else:
            canonical_id, allocated = ensure_canonical_id(path, location)
            if allocated:
                result.files_updated.append(location)

        language = self._detect_language(location, document.language, metadata, translation_of)
        if language is None:
            result.errors.append(f"{location}: no se pudo determinar el idioma ni el tipo")
            return None

        if language not in self._languages:
            result.errors.append(f"{location}: idioma no soportado '{language}'")
            return None

        return _ScannedFile(
            path           = path,
            location       = location,
            canonical_id   = canonical_id,
            language       = language,
            content_hash   = compute_content_hash(raw),
            title          = document.title or PurePosixPath(location).stem,
            metadata       = metadata,
            translation_of = translation_of,
        )

    def _detect_language(
        self,
        location:       str,
        declared:       Optional[str],
        metadata:       dict,
        translation_of: Optional[str],
    ) -> Optional[str]:
        """
        Orden de preferencia:
        1. translationOf → traducción en el idioma declarado
        2. originalLanguage → original
        3. Heurística de ruta (solo si está habilitada, con aviso)
        """
        path_language = language_from_location(location, self._languages)

        if translation_of:
            return declared or path_language

        original_language = metadata.get("originalLanguage")
        if original_language:
            return declared or str(original_language).strip().lower()

        if not self._infer or path_language is None:
            return None
        if declared and declared != path_language:
            return None

        logger.warning(
            "%s sin marcadores de tipo: se asume original en '%s' por su ruta",
            location, path_language,
        )
        return path_language

    def _register_original(self, scanned: _ScannedFile, result: ScanResult) -> bool:
        entry = self._registry.get(scanned.canonical_id)

        if entry is None:
            self._registry.stage(CanonicalEntry(
                canonical_id    = scanned.canonical_id,
                origin_language = scanned.language,
                origin_location = scanned.location,
                content_hash    = scanned.content_hash,
                title           = scanned.title,
                last_modified   = utc_now(),
            ))
            result.registered.append(scanned.canonical_id)
            logger.info("Original registrado: %s (%s)", scanned.canonical_id, scanned.language)
            return True

        updated = False

        if entry.origin_location != scanned.location:
            if (self._content_root / entry.origin_location).exists():
                result.errors.append(
                    f"{scanned.location}: canonicalId {scanned.canonical_id} duplicado "
                    f"(ya pertenece a {entry.origin_location})"
                )
                return False
            logger.info(
                "Origen de %s movido: %s → %s",
                entry.canonical_id, entry.origin_location, scanned.location,
            )
            entry.origin_location = scanned.location
            updated = True

        if scanned.language != entry.origin_language:
            result.errors.append(
                f"{scanned.location}: idioma '{scanned.language}' no coincide con el "
                f"idioma de origen registrado '{entry.origin_language}'"
            )
            return updated

        if entry.update_content_hash(scanned.content_hash):
            logger.info("Origen modificado, traducciones marcadas stale: %s", entry.canonical_id)
            updated = True

        if scanned.title != entry.title:
            entry.title = scanned.title
            updated = True

        return updated

    def _register_translation(self, scanned: _ScannedFile, result: ScanResult) -> bool:
        entry = self._registry.get(scanned.translation_of)
        if entry is None:
            logger.warning(
                "Traducción %s referencia un original inexistente: %s",
                scanned.location, scanned.translation_of,
            )
            result.errors.append(
                f"{scanned.location}: translationOf '{scanned.translation_of}' no existe"
            )
            return False

        if scanned.language == entry.origin_language:
            result.errors.append(
                f"{scanned.location}: traducción al idioma de origen de {entry.canonical_id}"
            )
            return False

        source_hash = str(scanned.metadata.get("sourceHash") or "")
        status = (
            TranslationStatus.CURRENT
            if source_hash and source_hash == entry.content_hash
            else TranslationStatus.STALE
        )

        existing = entry.translations.get(scanned.language)
        if (
            existing is not None
            and existing.location == scanned.location
            and existing.status == status
            and existing.content_hash == source_hash
        ):
            return False

        entry.set_translation(
            language     = scanned.language,
            location     = scanned.location,
            content_hash = source_hash,
            status       = status,
            generated_at = existing.last_generated if existing else None,
        )
        logger.info(
            "Traducción registrada: %s (%s de %s, %s)",
            scanned.location, scanned.language, entry.canonical_id, status.value,
        )
        return True

    # ------------------------------------------------------------------
    # Reconciliación y auditoría
    # ------------------------------------------------------------------

    def reconcile(self, dry_run: bool = False) -> ReconcileResult:
        """
        Única vía de borrado: quita entradas cuyo origen ya no existe y marca
        missing las traducciones cuyo archivo desapareció.
        """
        result = ReconcileResult()

        for entry in self._registry.entries():
            if not (self._content_root / entry.origin_location).exists():
                result.removed.append(entry.canonical_id)
                logger.info("Origen eliminado, se quita la entrada %s", entry.canonical_id)
                if not dry_run:
                    self._registry.remove(entry.canonical_id)
                continue

            for language, record in sorted(entry.translations.items()):
                if record.status == TranslationStatus.MISSING:
                    continue
                if (self._content_root / record.location).exists():
                    continue
                result.marked_missing.append(f"{entry.canonical_id}:{language}")
                if not dry_run:
                    record.status = TranslationStatus.MISSING

        if result.changed and not dry_run:
            self._registry.flush()

        return result

    def audit(self) -> AuditResult:
        errors:   list[str] = []
        warnings: list[str] = []
        stats = {
            "entries":      0,
            "translations": 0,
            "current":      0,
            "stale":        0,
            "missing":      0,
        }

        for entry in self._registry.entries():
            stats["entries"] += 1
            cid = entry.canonical_id

            if not is_valid_canonical_id(cid):
                warnings.append(f"Formato de canonicalId no estándar: {cid}")

            if entry.origin_language not in self._languages:
                errors.append(f"{cid}: idioma de origen no soportado '{entry.origin_language}'")

            if not (self._content_root / entry.origin_location).exists():
                errors.append(f"Original file missing: {entry.origin_location} ({cid})")
            else:
                declared = self._declared_id(self._content_root / entry.origin_location)
                if declared and declared != cid:
                    errors.append(
                        f"{entry.origin_location}: canonicalId en archivo ({declared}) "
                        f"no coincide con la clave del registry ({cid})"
                    )

            for language, record in sorted(entry.translations.items()):
                stats["translations"] += 1
                stats[record.status.value] += 1

                if language == entry.origin_language:
                    errors.append(f"{cid}: registro de traducción al idioma de origen ({language})")
                if language not in self._languages:
                    warnings.append(f"{cid}: traducción a idioma no soportado '{language}'")
                if (
                    record.status != TranslationStatus.MISSING
                    and not (self._content_root / record.location).exists()
                ):
                    warnings.append(
                        f"Translation file missing: {record.location} ({language} of {cid})"
                    )

        return AuditResult(valid=not errors, errors=errors, warnings=warnings, stats=stats)

    @staticmethod
    def _declared_id(path: Path) -> Optional[str]:
        try:
            metadata = parse_document(path.read_text(encoding="utf-8")).metadata
        except (OSError, ValueError):
            return None
        value = metadata.get("canonicalId")
        return str(value) if value else None


def language_from_location(location: str, languages: list[str]) -> Optional[str]:
    """Primer segmento de la ruta que coincide con un idioma soportado."""
    for part in PurePosixPath(location).parts[:-1]:
        if part in languages:
            return part
    return None


def derive_translation_location(origin_location: str, source_language: str, target_language: str) -> str:
    """
    books/en/post.md → books/de/post.md
    Sin segmento de idioma en la ruta se inserta el destino antes del archivo.
    """
    path  = PurePosixPath(origin_location)
    parts = list(path.parts)

    for index, part in enumerate(parts[:-1]):
        if part == source_language:
            parts[index] = target_language
            return PurePosixPath(*parts).as_posix()

    return (path.parent / target_language / path.name).as_posix()
