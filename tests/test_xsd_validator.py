import logging
import os
import shutil
import tempfile
import unittest
from datetime import date
from pathlib import Path

from config import SepaConfig
from exceptions import SchemaConformanceError, SchemaFileMissingError
from models import MessageHeader
from transaction_store import TransactionStore
from xml_generator import generate_pain008_xml
from xsd_validator import SchemaValidator, validate_xml

logging.disable(logging.CRITICAL)

# Reduced pain.008 schema: strict group header, payment blocks checked laxly.
LENIENT_XSD = """<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema"
           xmlns="{ns}" targetNamespace="{ns}" elementFormDefault="qualified">
  <xs:element name="Document">
    <xs:complexType>
      <xs:sequence>
        <xs:element name="CstmrDrctDbtInitn">
          <xs:complexType>
            <xs:sequence>
              <xs:element name="GrpHdr">
                <xs:complexType>
                  <xs:sequence>
                    <xs:element name="MsgId" type="xs:string"/>
                    <xs:element name="CreDtTm" type="xs:dateTime"/>
                    <xs:element name="NbOfTxs" type="xs:nonNegativeInteger"/>
                    <xs:element name="CtrlSum" type="xs:decimal"/>
                    <xs:element name="InitgPty">
                      <xs:complexType>
                        <xs:sequence>
                          <xs:element name="Nm" type="xs:string"/>
                        </xs:sequence>
                      </xs:complexType>
                    </xs:element>
                  </xs:sequence>
                </xs:complexType>
              </xs:element>
              <xs:element name="PmtInf" minOccurs="0" maxOccurs="unbounded">
                <xs:complexType>
                  <xs:sequence>
                    <xs:any processContents="skip" minOccurs="0" maxOccurs="unbounded"/>
                  </xs:sequence>
                </xs:complexType>
              </xs:element>
            </xs:sequence>
          </xs:complexType>
        </xs:element>
      </xs:sequence>
    </xs:complexType>
  </xs:element>
</xs:schema>
"""

# Expects a Grpg element the generator never writes.
STRICT_XSD = """<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema"
           xmlns="{ns}" targetNamespace="{ns}" elementFormDefault="qualified">
  <xs:element name="Document">
    <xs:complexType>
      <xs:sequence>
        <xs:element name="Grpg" type="xs:string"/>
      </xs:sequence>
    </xs:complexType>
  </xs:element>
</xs:schema>
"""

NS_PREFIX = "urn:iso:std:iso:20022:tech:xsd:pain."


def write_schema(directory, version, template):
    path = Path(directory) / f"pain.{version}.xsd"
    path.write_text(template.format(ns=NS_PREFIX + version), encoding="utf-8")
    return path


class TestXsdValidator(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.schema_dir = tempfile.mkdtemp()
        write_schema(cls.schema_dir, "008.002.02", LENIENT_XSD)
        write_schema(cls.schema_dir, "008.003.02", STRICT_XSD)

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(cls.schema_dir, ignore_errors=True)

    def _generate(self, schema_version="008.002.02"):
        header = MessageHeader(
            message_id="XSD-TEST", initiator_name="Valid Creditor", collection_date=date(2024, 6, 3),
            creditor_name="Valid Creditor", creditor_iban="DE89370400440532013000",
            creditor_bic="COBADEFFXXX", creditor_id="DE98ZZZ09999999999",
        )
        store = TransactionStore()
        store.insert(dict(
            end_to_end_id="E2E-1", iban="DE02120300000000202051", debtor_name="Max Mustermann",
            mandate_id="M-1", mandate_signature_date="2023-01-01", amount="10.00",
            subject="Fee", sequence_type="FIRST",
        ))
        return generate_pain008_xml(header, store, schema_version=schema_version)

    def test_validate_xml_with_valid_document(self):
        xml_string = self._generate()
        is_valid, errors = validate_xml(xml_string, os.path.join(self.schema_dir, "pain.008.002.02.xsd"))
        self.assertTrue(is_valid, errors)
        self.assertEqual(errors, [])

    def test_validate_xml_reports_schema_violations(self):
        xml_string = self._generate("008.003.02")
        is_valid, errors = validate_xml(xml_string, os.path.join(self.schema_dir, "pain.008.003.02.xsd"))
        self.assertFalse(is_valid)
        self.assertTrue(any("Grpg" in error for error in errors), errors)

    def test_validate_xml_errors_name_elements_without_namespace(self):
        ns = NS_PREFIX + "008.002.02"
        xml_string = (
            f'<Document xmlns="{ns}"><CstmrDrctDbtInitn><GrpHdr><MsgId>X</MsgId></GrpHdr>'
            f'</CstmrDrctDbtInitn></Document>'
        )
        is_valid, errors = validate_xml(xml_string, os.path.join(self.schema_dir, "pain.008.002.02.xsd"))
        self.assertFalse(is_valid)
        self.assertTrue(errors[0].startswith("line 1: Element 'GrpHdr'"), errors)
        self.assertIn("CreDtTm", errors[0])
        self.assertNotIn(ns, errors[0])

    def test_validate_xml_version_mismatch(self):
        xml_string = self._generate("008.002.02")
        is_valid, errors = validate_xml(xml_string, os.path.join(self.schema_dir, "pain.008.003.02.xsd"))
        self.assertFalse(is_valid)
        self.assertEqual(len(errors), 1)
        self.assertIn("Namespace mismatch", errors[0])
        self.assertIn("pain.008.003.02", errors[0])

    def test_validate_xml_non_existent_xsd_file(self):
        is_valid, errors = validate_xml("<Document/>", os.path.join(self.schema_dir, "missing.xsd"))
        self.assertFalse(is_valid)
        self.assertEqual(len(errors), 1)

    def test_validate_xml_malformed_xml(self):
        malformed = "<Document><CstmrDrctDbtInitn>"
        is_valid, errors = validate_xml(malformed, os.path.join(self.schema_dir, "pain.008.002.02.xsd"))
        self.assertFalse(is_valid)
        self.assertTrue(errors[0].startswith("Malformed XML"), errors)

    def test_validate_xml_unparsable_schema(self):
        broken = Path(self.schema_dir) / "broken.xsd"
        broken.write_text("<xs:schema xmlns:xs='http://www.w3.org/2001/XMLSchema'><xs:element/></xs:schema>",
                          encoding="utf-8")
        is_valid, errors = validate_xml("<Document/>", str(broken))
        self.assertFalse(is_valid)
        self.assertTrue(errors[0].startswith("XSD schema parse error"), errors)


class TestSchemaValidator(unittest.TestCase):

    def setUp(self):
        self.schema_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.schema_dir, True)

    def test_disabled_without_schema_dir(self):
        validator = SchemaValidator(SepaConfig())
        self.assertFalse(validator.enabled)
        self.assertIsNone(validator.schema_path)
        self.assertTrue(validator.validate("not even xml"))

    def test_schema_path_uses_version(self):
        validator = SchemaValidator(SepaConfig(schema_version="008.001.02", schema_dir=self.schema_dir))
        self.assertEqual(validator.schema_path, Path(self.schema_dir) / "pain.008.001.02.xsd")

    def test_missing_schema_file(self):
        validator = SchemaValidator(SepaConfig(schema_dir=self.schema_dir))
        with self.assertRaises(SchemaFileMissingError) as ctx:
            validator.validate("<Document/>")
        self.assertTrue(ctx.exception.path.endswith("pain.008.002.02.xsd"))
        self.assertEqual(ctx.exception.document, "<Document/>")

    def test_conformance_error(self):
        write_schema(self.schema_dir, "008.002.02", STRICT_XSD)
        validator = SchemaValidator(SepaConfig(schema_dir=self.schema_dir))
        xml_string = f'<?xml version="1.0" encoding="utf-8"?>\n<Document xmlns="{NS_PREFIX}008.002.02"><Other/></Document>'
        with self.assertRaises(SchemaConformanceError) as ctx:
            validator.validate(xml_string)
        self.assertTrue(ctx.exception.errors)
        self.assertEqual(ctx.exception.document, xml_string)

    def test_valid_document_passes(self):
        write_schema(self.schema_dir, "008.002.02", STRICT_XSD)
        validator = SchemaValidator(SepaConfig(schema_dir=self.schema_dir))
        xml_string = f'<Document xmlns="{NS_PREFIX}008.002.02"><Grpg>GRPD</Grpg></Document>'
        self.assertTrue(validator.validate(xml_string))


if __name__ == '__main__':
    unittest.main()
