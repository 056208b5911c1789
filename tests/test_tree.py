# tests/test_tree.py
# GalleryTree insertion, ancestor creation and location backfill

from concurrent.futures import ThreadPoolExecutor

from gallery_site_sync.models import GalleryEntry, Location
from gallery_site_sync.tree import ANOMALY_DUPLICATE_PATH, ANOMALY_MISSING_PARENT, GalleryTree


class TestInsert:
    def test_insert_under_root(self, tree: GalleryTree):
        entry = GalleryEntry(path="/albums/", title="Albums")
        assert tree.insert("/", "/albums/", entry) is None
        assert tree.get("/albums/") is entry
        assert entry in tree.get("/").children

    def test_duplicate_path_is_rejected_not_fatal(self, tree: GalleryTree, run_state, capsys):
        tree.insert("/", "/albums/", GalleryEntry(path="/albums/", title="Albums"))
        anomaly = tree.insert("/", "/albums/", GalleryEntry(path="/albums/", title="Other"))

        assert anomaly.kind == ANOMALY_DUPLICATE_PATH
        assert tree.get("/albums/").title == "Albums"
        assert len(tree.get("/").children) == 1
        assert run_state.anomalies == [anomaly]
        assert "entry skipped" in capsys.readouterr().out

    def test_missing_parent_is_reported(self, tree: GalleryTree, run_state):
        anomaly = tree.insert("/albums/", "/albums/x/", GalleryEntry(path="/albums/x/", title="x"))
        assert anomaly.kind == ANOMALY_MISSING_PARENT
        assert "/albums/x/" not in tree
        assert run_state.anomalies == [anomaly]


class TestParents:
    def test_creates_every_missing_ancestor_with_reformatted_titles(self, tree: GalleryTree):
        anomalies = tree.ensure_parent_folders_exist(
            ["albums", "2020", "2020-01-05-walk", "img_001"],
            ["Albums", "2020", "2020-01-05-walk", "IMG_001"],
        )
        assert anomalies == []
        assert tree.get("/albums/").title == "Albums"
        assert tree.get("/albums/2020/").title == "2020"
        assert tree.get("/albums/2020/2020-01-05-walk/").title == "5 January 2020 - walk"
        assert "/albums/2020/2020-01-05-walk/img_001/" not in tree

    def test_concurrent_ancestor_creation_has_no_duplicates(self, tree: GalleryTree, run_state):
        def add(index):
            tree.ensure_parent_folders_exist(
                ["albums", "shared", "deep", f"leaf-{index}"],
                ["Albums", "shared", "deep", f"leaf-{index}"],
            )

        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(add, range(50)))

        assert run_state.anomalies == []
        assert len(tree.get("/albums/shared/").children) == 1
        assert len(tree) == 4


class TestDescribeAndBackfill:
    def test_describe_only_fills_empty_descriptions(self, tree: GalleryTree):
        tree.insert("/", "/events/", GalleryEntry(path="/events/", title="Events", description="kept"))
        assert tree.describe("/events/", "replaced") is False
        assert tree.get("/events/").description == "kept"
        assert tree.describe("/missing/", "x") is False

    def test_backfill_uses_leaf_descendants(self, tree: GalleryTree):
        tree.ensure_parent_folders_exist(["albums", "a", "p1"], ["Albums", "a", "p1"])
        tree.insert("/albums/a/", "/albums/a/p1/", GalleryEntry(path="/albums/a/p1/", title="p1", location=Location(0.0, -10.0)))
        tree.insert("/albums/a/", "/albums/a/p2/", GalleryEntry(path="/albums/a/p2/", title="p2", location=Location(0.0, 10.0)))
        tree.insert("/albums/a/", "/albums/a/p3/", GalleryEntry(path="/albums/a/p3/", title="p3"))

        updated = tree.backfill_locations()

        assert updated == 3  # root, /albums/ and /albums/a/
        assert tree.get("/albums/a/").location == Location(0.0, 0.0)
        assert tree.get("/").location == Location(0.0, 0.0)
        assert tree.get("/albums/a/p3/").location is None

    def test_existing_folder_location_is_kept(self, tree: GalleryTree):
        folder = GalleryEntry(path="/albums/", title="Albums", location=Location(10.0, 10.0))
        tree.insert("/", "/albums/", folder)
        tree.insert("/albums/", "/albums/p/", GalleryEntry(path="/albums/p/", title="p", location=Location(0.0, 0.0)))
        tree.backfill_locations()
        assert folder.location == Location(10.0, 10.0)


class TestHiddenPaths:
    def test_configured_case_does_not_matter(self):
        tree = GalleryTree(hidden_paths=["/Albums/Private/"])
        assert tree.is_hidden("/albums/private/")
        assert tree.is_hidden("/ALBUMS/PRIVATE/")
        assert tree.is_under_hidden("/albums/private/img_1/")
        assert not tree.is_hidden("/albums/public/")


class TestFolderTitles:
    def test_title_does_not_depend_on_arrival_order(self):
        spellings = [["Albums", "beach", "IMG_1"], ["Albums", "Beach", "IMG_2"]]
        titles = []
        for order in (spellings, list(reversed(spellings))):
            tree = GalleryTree()
            tree.add_root("Photo Gallery", "")
            for crumbs in order:
                tree.ensure_parent_folders_exist(["albums", "beach", crumbs[-1].lower()], crumbs)
            titles.append(tree.get("/albums/beach/").title)
        assert titles == ["Beach", "Beach"]

    def test_inserted_folder_keeps_its_title(self, tree: GalleryTree):
        tree.insert("/", "/albums/", GalleryEntry(path="/albums/", title="My albums"))
        tree.ensure_parent_folders_exist(["albums", "a", "p1"], ["Albums", "a", "p1"])
        assert tree.get("/albums/").title == "My albums"
