def test_can_create_scan_entry_row(app, db):
    with app.app_context():
        from expiry_scan.models import ScanEntry

        entry = ScanEntry(gtin14="05012345678900", gtin13="5012345678900", batch="LOT1")
        db.session.add(entry)
        db.session.commit()

        assert ScanEntry.query.count() == 1
        assert entry.to_dict()["expiry_status"] == "missing"
        assert entry.to_dict()["match_type"] == "NONE"


def test_catalog_upsert_keeps_insertion_order(app, db):
    with app.app_context():
        from expiry_scan.catalog.store import load_catalog, upsert_product

        upsert_product("5012345678900", "Paracetamol")
        upsert_product("4006381333931", "Plasters")
        upsert_product("5012345678900", "Paracetamol 500mg")
        db.session.commit()

        assert list(load_catalog().items()) == [
            ("5012345678900", "Paracetamol 500mg"),
            ("4006381333931", "Plasters"),
        ]
