from datetime import date

from django.test import SimpleTestCase

from fulfillment.services.codes import InvalidDonorCode, is_donor_code, parse_donor_code


class DonorCodeTests(SimpleTestCase):
    def test_parse(self):
        code = parse_donor_code(' dn2601051473 ')
        self.assertEqual(str(code), 'DN2601051473')
        self.assertEqual(code.issued_on, date(2026, 1, 5))
        self.assertEqual(code.issued_hour, 14)
        self.assertEqual(code.suffix, '73')

    def test_wrong_length(self):
        with self.assertRaises(InvalidDonorCode):
            parse_donor_code('AB12CD34')

    def test_invalid_date_or_hour(self):
        self.assertFalse(is_donor_code('DN2602301473'))
        self.assertFalse(is_donor_code('DN2601052573'))
        self.assertFalse(is_donor_code('XX2601051473'))
        self.assertTrue(is_donor_code('DN2602281473'))
