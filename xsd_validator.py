from lxml import etree
import logging
import re
from pathlib import Path
from typing import List, Optional, Tuple

from config import SepaConfig
from exceptions import SchemaConformanceError, SchemaFileMissingError

logger = logging.getLogger(__name__)

# lxml names elements as {urn:iso:std:iso:20022:tech:xsd:pain.008.002.02}GrpHdr.
CLARK_NAMESPACE = re.compile(r"\{[^}]*\}")


def _schema_issue(error) -> str:
    """One lxml log entry as ``line N: Element 'GrpHdr': ...`` with namespaces dropped."""
    return f"line {error.line}: {CLARK_NAMESPACE.sub('', error.message)}"


def validate_xml(xml_string: str, xsd_filepath: str) -> Tuple[bool, List[str]]:
    """
    Checks a pain document against an XSD file.

    Returns ``(is_valid, errors)``. Schema violations are reported as
    ``line N: Element 'GrpHdr': message`` without namespace noise; a document whose
    namespace differs from the schema's target namespace is reported as a
    version mismatch instead of a cascade of element errors.
    """
    try:
        schema_doc = etree.parse(str(xsd_filepath))
        xmlschema = etree.XMLSchema(schema_doc)
    except (etree.XMLSchemaParseError, etree.XMLSyntaxError) as e:
        logger.error(f"XSD schema file '{xsd_filepath}' could not be parsed: {e}")
        return False, [f"XSD schema parse error: {e}"]
    except OSError as e:
        logger.error(f"XSD schema file '{xsd_filepath}' not found or not accessible: {e}")
        return False, [f"XSD file error: {e}"]

    # lxml refuses str input carrying an encoding declaration.
    try:
        document = etree.fromstring(xml_string.encode('utf-8'))
    except etree.XMLSyntaxError as e:
        logger.error(f"Generated document is not well-formed: {e}")
        return False, [f"Malformed XML: {e}"]

    target_namespace = schema_doc.getroot().get("targetNamespace")
    document_namespace = etree.QName(document).namespace
    if target_namespace and document_namespace != target_namespace:
        message = f"Namespace mismatch: document uses {document_namespace!r}, schema expects {target_namespace!r}."
        logger.warning(message)
        return False, [message]

    if xmlschema.validate(document):
        logger.info(f"Document conforms to {Path(xsd_filepath).name}.")
        return True, []

    errors = [_schema_issue(error) for error in xmlschema.error_log]
    logger.warning(f"Document violates {Path(xsd_filepath).name}: {len(errors)} error(s).")
    logger.debug(f"Schema errors: {errors}")
    return False, errors or [f"Document does not conform to {Path(xsd_filepath).name}."]


class SchemaValidator:
    """
    Optional conformance check of generated documents.

    Disabled (always succeeds) unless the configuration names a schema
    directory; otherwise ``pain.<version>.xsd`` from that directory is used.
    """

    def __init__(self, config: Optional[SepaConfig] = None):
        self.config = config or SepaConfig()

    @property
    def enabled(self) -> bool:
        return self.config.schema_dir is not None

    @property
    def schema_path(self) -> Optional[Path]:
        if not self.enabled:
            return None
        return Path(self.config.schema_dir) / self.config.xsd_filename

    def validate(self, xml_string: str) -> bool:
        """
        Raises:
            SchemaFileMissingError: The XSD for the configured version does not exist.
            SchemaConformanceError: The document does not conform to the XSD.
        """
        if not self.enabled:
            logger.debug("No schema directory configured; skipping XSD validation.")
            return True

        xsd_path = self.schema_path
        if not xsd_path.is_file():
            logger.warning(f"Schema file {xsd_path} was not found.")
            raise SchemaFileMissingError(str(xsd_path), document=xml_string)

        is_valid, errors = validate_xml(xml_string, str(xsd_path))
        if not is_valid:
            raise SchemaConformanceError(errors, document=xml_string)
        return True
