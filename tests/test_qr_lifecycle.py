import datetime
from unittest.mock import patch

from sqlalchemy.exc import IntegrityError

from qrstudio.errors import ImmutableField, InvalidInput, NotFound, QuotaExceeded, UpstreamError
from qrstudio.extensions import db
from qrstudio.models.dynamic_qr_code import DynamicQRCode
from qrstudio.models.qr_code import QRCode
from qrstudio.services import qr_service, user_service
from tests.base import AppTestCase


class CreateStaticTests(AppTestCase):

    def test_fifth_static_code_is_rejected(self):
        user = self.make_user()
        for i in range(4):
            qr_service.save_qr_code(user, "A", f"https://x.com/{i}", {"isDynamic": False})

        with self.assertRaises(QuotaExceeded) as cm:
            qr_service.save_qr_code(user, "A", "https://x.com/5", {"isDynamic": False})

        self.assertIn("QR code limit reached (4/4)", str(cm.exception))
        self.assertEqual(QRCode.query.filter_by(user_id=user.id).count(), 4)
        self.assertEqual(user_service.get_user_data(self.reload(user))["qr_count"], 4)

    def test_static_code_stores_destination_and_echoes_settings(self):
        user = self.make_user()
        qr_id = qr_service.save_qr_code(user, "  Shop  ", "https://shop.example.com", {"dotsColor": "#112233"})

        qr = db.session.get(QRCode, qr_id)
        self.assertEqual(qr.name, "Shop")
        self.assertEqual(qr.url, "https://shop.example.com")
        self.assertFalse(qr.is_dynamic)
        self.assertEqual(qr.settings["url"], "https://shop.example.com")
        self.assertFalse(qr.settings["isDynamic"])
        self.assertEqual(qr.settings["dotsColor"], "#112233")
        self.assertEqual(self.reload(user).qr_count, 1)

    def test_soft_delete_frees_slot_but_keeps_history(self):
        user = self.make_user()
        ids = [qr_service.save_qr_code(user, "A", f"https://x.com/{i}", {}) for i in range(4)]

        qr_service.delete_qr_code(user, ids[0])
        self.assertEqual(self.reload(user).qr_count, 4)

        qr_service.save_qr_code(user, "B", "https://x.com/new", {})
        self.assertEqual(self.reload(user).qr_count, 5)
        self.assertIsNotNone(db.session.get(QRCode, ids[0]).deleted_at)

    def test_rejects_invalid_input(self):
        user = self.make_user()

        for bad_url in ("", "   ", "not a url", "ftp://files.example.com", "https://blocked.example/x",
                        "https://x.com/" + "a" * 2100):
            with self.assertRaises(InvalidInput):
                qr_service.save_qr_code(user, "A", bad_url, {})

        with self.assertRaises(InvalidInput):
            qr_service.save_qr_code(user, "   ", "https://x.com", {})
        with self.assertRaises(InvalidInput):
            qr_service.save_qr_code(user, "A", "https://x.com", ["not", "a", "dict"])

        self.assertEqual(QRCode.query.count(), 0)

    def test_is_dynamic_must_be_a_real_boolean(self):
        user = self.make_user()

        for flag in ("false", "true", 0, 1, None):
            with self.assertRaises(InvalidInput):
                qr_service.save_qr_code(user, "A", "https://x.com", {"isDynamic": flag})

        self.assertEqual(QRCode.query.count(), 0)
        self.assertEqual(DynamicQRCode.query.count(), 0)

    def test_counter_failure_does_not_undo_the_record(self):
        user = self.make_user()
        failure = IntegrityError("UPDATE", {}, Exception("boom"))

        with patch("qrstudio.repositories.user_repository.increment_qr_count", side_effect=failure):
            qr_id = qr_service.save_qr_code(user, "A", "https://x.com", {})

        self.assertIsNotNone(db.session.get(QRCode, qr_id))
        self.assertEqual(self.reload(user).qr_count, 0)


class UpdateTests(AppTestCase):

    def setUp(self):
        super().setUp()
        self.user = self.make_user()
        self.static_id = qr_service.save_qr_code(self.user, "Static", "https://x.com", {"dotsColor": "#000000"})

    def test_rename_through_save_keeps_url(self):
        self.advance(minutes=5)
        qr_service.save_qr_code(self.user, "Renamed", "https://x.com", {"dotsColor": "#ff0000"}, qr_id=self.static_id)

        qr = db.session.get(QRCode, self.static_id)
        self.assertEqual(qr.name, "Renamed")
        self.assertEqual(qr.url, "https://x.com")
        self.assertEqual(qr.settings["dotsColor"], "#ff0000")
        self.assertEqual(qr.updated_at, self.now)
        self.assertEqual(self.reload(self.user).qr_count, 1)

    def test_update_does_not_consume_quota(self):
        for i in range(3):
            qr_service.save_qr_code(self.user, "A", f"https://x.com/{i}", {})

        qr_service.save_qr_code(self.user, "Edited", "https://x.com", {}, qr_id=self.static_id)

        self.assertEqual(db.session.get(QRCode, self.static_id).name, "Edited")

    def test_static_url_is_immutable(self):
        with self.assertRaises(ImmutableField) as cm:
            qr_service.save_qr_code(self.user, "Static", "https://other.com", {}, qr_id=self.static_id)

        self.assertIn("cannot be changed for non-dynamic", str(cm.exception))
        qr = db.session.get(QRCode, self.static_id)
        self.assertEqual(qr.url, "https://x.com")
        self.assertEqual(qr.name, "Static")

    def test_static_cannot_become_dynamic(self):
        with self.assertRaises(ImmutableField) as cm:
            qr_service.save_qr_code(self.user, "Static", "https://x.com", {"isDynamic": True}, qr_id=self.static_id)

        self.assertIn("type cannot be changed", str(cm.exception))
        self.assertFalse(db.session.get(QRCode, self.static_id).is_dynamic)
        self.assertEqual(DynamicQRCode.query.count(), 0)

    def test_dynamic_cannot_become_static(self):
        dyn_id = qr_service.save_qr_code(self.user, "Dyn", "https://dest.com", {"isDynamic": True})
        before = db.session.get(QRCode, dyn_id).url

        with self.assertRaises(ImmutableField):
            qr_service.save_qr_code(self.user, "Dyn", "https://dest.com", {"isDynamic": False}, qr_id=dyn_id)

        qr = db.session.get(QRCode, dyn_id)
        self.assertTrue(qr.is_dynamic)
        self.assertEqual(qr.url, before)

    def test_unknown_or_foreign_code_is_not_found(self):
        other = self.make_user("intruder")

        with self.assertRaises(NotFound):
            qr_service.save_qr_code(other, "Mine", "https://x.com", {}, qr_id=self.static_id)
        with self.assertRaises(NotFound):
            qr_service.save_qr_code(self.user, "X", "https://x.com", {}, qr_id="missing-id")

    def test_deleted_code_cannot_be_updated(self):
        qr_service.delete_qr_code(self.user, self.static_id)

        with self.assertRaises(NotFound):
            qr_service.save_qr_code(self.user, "Back", "https://x.com", {}, qr_id=self.static_id)


class DynamicLifecycleTests(AppTestCase):

    def test_create_generates_scan_url_and_companion(self):
        user = self.make_user()
        qr_id = qr_service.save_qr_code(user, "Menu", "https://menu.example.com/today", {"isDynamic": True})

        qr = db.session.get(QRCode, qr_id)
        dyn = DynamicQRCode.query.filter_by(qr_code_id=qr_id).one()

        self.assertTrue(qr.is_dynamic)
        self.assertEqual(len(dyn.unique_id), 32)
        self.assertEqual(qr.url, f"https://qr.example.com/dynamic/scan/{dyn.unique_id}")
        self.assertEqual(qr.settings["url"], qr.url)
        self.assertTrue(qr.settings["isDynamic"])
        self.assertEqual(dyn.destination_url, "https://menu.example.com/today")
        self.assertEqual(dyn.user_id, user.id)
        self.assertEqual(dyn.expires_at, self.start + datetime.timedelta(days=15))
        self.assertEqual(self.reload(user).qr_count, 1)

    def test_destination_edits_keep_unique_id(self):
        user = self.make_user()
        qr_id = qr_service.save_qr_code(user, "Menu", "https://a.example.com", {"isDynamic": True})
        dyn = DynamicQRCode.query.filter_by(qr_code_id=qr_id).one()
        unique_id, scan_url, expires_at = dyn.unique_id, db.session.get(QRCode, qr_id).url, dyn.expires_at

        for i, dest in enumerate(["https://b.example.com", "https://c.example.com", "https://d.example.com"]):
            self.advance(days=1)
            qr_service.save_qr_code(user, f"Menu {i}", dest, {"isDynamic": True, "url": dest}, qr_id=qr_id)

        dyn = self.reload(dyn)
        qr = db.session.get(QRCode, qr_id)
        self.assertEqual(dyn.unique_id, unique_id)
        self.assertEqual(dyn.destination_url, "https://d.example.com")
        self.assertEqual(dyn.expires_at, expires_at)
        self.assertEqual(dyn.updated_at, self.now)
        self.assertEqual(qr.url, scan_url)
        self.assertEqual(qr.settings["url"], scan_url)
        self.assertEqual(qr.name, "Menu 2")

    def test_second_active_dynamic_code_is_rejected(self):
        user = self.make_user()
        qr_service.save_qr_code(user, "One", "https://a.example.com", {"isDynamic": True})

        with self.assertRaises(QuotaExceeded) as cm:
            qr_service.save_qr_code(user, "Two", "https://b.example.com", {"isDynamic": True})

        self.assertIn("(1/1)", str(cm.exception))
        self.assertEqual(DynamicQRCode.query.count(), 1)
        self.assertEqual(QRCode.query.count(), 1)

    def test_companion_failure_rolls_back_qr_row(self):
        user = self.make_user()
        failure = IntegrityError("INSERT", {}, Exception("duplicate unique_id"))

        with patch("qrstudio.repositories.dynamic_qr_repository.insert", side_effect=failure):
            with self.assertRaises(UpstreamError):
                qr_service.save_qr_code(user, "Menu", "https://menu.example.com", {"isDynamic": True})

        self.assertEqual(QRCode.query.count(), 0)
        self.assertEqual(DynamicQRCode.query.count(), 0)
        self.assertEqual(self.reload(user).qr_count, 0)

    def test_delete_cascades_to_companion(self):
        user = self.make_user()
        qr_id = qr_service.save_qr_code(user, "Menu", "https://menu.example.com", {"isDynamic": True})

        qr_service.delete_qr_code(user, qr_id)

        dyn = DynamicQRCode.query.filter_by(qr_code_id=qr_id).one()
        self.assertEqual(dyn.deleted_at, self.now)
        self.assertEqual(db.session.get(QRCode, qr_id).deleted_at, self.now)


class DeleteAndRenameTests(AppTestCase):

    def test_delete_requires_ownership(self):
        owner = self.make_user("owner")
        other = self.make_user("other")
        qr_id = qr_service.save_qr_code(owner, "A", "https://x.com", {})

        with self.assertRaises(NotFound):
            qr_service.delete_qr_code(other, qr_id)
        self.assertIsNone(db.session.get(QRCode, qr_id).deleted_at)

    def test_delete_twice_is_not_found(self):
        user = self.make_user()
        qr_id = qr_service.save_qr_code(user, "A", "https://x.com", {})
        qr_service.delete_qr_code(user, qr_id)

        with self.assertRaises(NotFound):
            qr_service.delete_qr_code(user, qr_id)

    def test_rename(self):
        user = self.make_user()
        qr_id = qr_service.save_qr_code(user, "A", "https://x.com", {})
        self.advance(minutes=1)

        qr = qr_service.rename_qr_code(user, qr_id, "  Flyer  ")

        self.assertEqual(qr.name, "Flyer")
        self.assertEqual(qr.url, "https://x.com")
        self.assertEqual(qr.updated_at, self.now)

    def test_rename_rejects_empty_name(self):
        user = self.make_user()
        qr_id = qr_service.save_qr_code(user, "A", "https://x.com", {})

        with self.assertRaises(InvalidInput):
            qr_service.rename_qr_code(user, qr_id, "   ")
        self.assertEqual(db.session.get(QRCode, qr_id).name, "A")

    def test_list_hides_deleted_unless_requested(self):
        user = self.make_user()
        keep = qr_service.save_qr_code(user, "Keep", "https://x.com/1", {})
        gone = qr_service.save_qr_code(user, "Gone", "https://x.com/2", {})
        qr_service.delete_qr_code(user, gone)

        self.assertEqual([qr.id for qr in qr_service.list_qr_codes(user)], [keep])
        self.assertEqual({qr.id for qr in qr_service.list_qr_codes(user, include_deleted=True)}, {keep, gone})
