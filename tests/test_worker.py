"""test_worker.py - file queue worker: output files, signals and pausing"""

import json
import os
import tempfile

from PyQt6.QtCore import QCoreApplication

from base_test import BaseTestCase, ScriptedService, upper_responder

from autotrans.api_client import EchoClient
from autotrans.project_model import FileState
from autotrans.rpgmaker_mv import load_document, save_document
from autotrans.translation_engine import TranslationWorker


class TestTranslationWorker(BaseTestCase):

    @classmethod
    def setUpClass(cls):
        cls.app = QCoreApplication.instance() or QCoreApplication([])

    def setUp(self):
        super().setUp()
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def _write(self, name, document):
        path = os.path.join(self.tmp.name, name)
        save_document(path, document)
        return path

    def _run(self, ctx, files, output_dir=""):
        worker = TranslationWorker(ctx, files, output_dir)
        events = {"started": [], "batches": [], "done": [], "errors": [], "finished": 0}
        worker.file_started.connect(lambda i, n, name: events["started"].append((i, n, name)))
        worker.batch_done.connect(lambda *args: events["batches"].append(args))
        worker.file_done.connect(events["done"].append)
        worker.error.connect(lambda name, msg: events["errors"].append(name))

        def on_finished():
            events["finished"] += 1
        worker.finished.connect(on_finished)
        worker.run()
        return worker, events

    def test_writes_translated_copy_beside_input(self):
        path = self._write("Map001.json", self.map_doc)
        ctx = self.make_context(ScriptedService(responder=upper_responder))
        worker, events = self._run(ctx, [path])

        out_path = os.path.join(self.tmp.name, "Map001_translated.json")
        self.assertEqual(worker.output_path(path), out_path)
        self.assertTrue(os.path.exists(out_path))
        self.assertEqual(load_document(path), self.map_doc)
        self.assertEqual(events["started"], [(0, 1, "Map001.json")])
        self.assertEqual(events["batches"], [("Map001.json", 1, 1, True)])
        self.assertEqual(events["finished"], 1)
        self.assertIs(events["done"][0].state, FileState.COMPLETED)

    def test_output_dir(self):
        path = self._write("Actors.json", self.actors_doc)
        out_dir = os.path.join(self.tmp.name, "out")
        os.makedirs(out_dir)
        self._run(self.make_context(EchoClient()), [path], out_dir)
        with open(os.path.join(out_dir, "Actors_translated.json"), encoding="utf-8") as f:
            self.assertEqual(json.load(f), self.actors_doc)

    def test_unreadable_file_reported_and_queue_continues(self):
        bad = os.path.join(self.tmp.name, "Map002.json")
        with open(bad, "w", encoding="utf-8") as f:
            f.write("{broken")
        good = self._write("Skills.json", self.skills_doc)
        worker, events = self._run(self.make_context(EchoClient()), [bad, good])

        self.assertEqual(events["errors"], ["Map002.json"])
        self.assertEqual([r.filename for r in worker.results], ["Skills.json"])
        self.assertEqual(events["finished"], 1)

    def test_no_output_for_files_without_text(self):
        path = self._write("Weapons.json", [None, {"id": 1, "name": ""}])
        worker, _ = self._run(self.make_context(EchoClient()), [path])
        self.assertFalse(os.path.exists(worker.output_path(path)))

    def test_paused_run_starts_no_files(self):
        path = self._write("Map001.json", self.map_doc)
        ctx = self.make_context(EchoClient())
        ctx.pause()
        worker, events = self._run(ctx, [path])
        self.assertEqual(events["started"], [])
        self.assertEqual(worker.results, [])
        self.assertEqual(events["finished"], 1)
