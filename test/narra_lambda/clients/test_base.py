from concurrent.futures import ThreadPoolExecutor
from test.base import BaseTest
from test.narra_lambda.base import FakeHttp

import requests

from narra_lambda.clients.base import HttpClient

URL = "https://api.example.com"


class HttpClientTests(BaseTest):
    def test__url_for__joins_relative_paths(self):
        client = HttpClient(base_url=f"{URL}/")

        self.assertEqual(client.url_for("/v1/items"), f"{URL}/v1/items")
        other = "https://other.example.com/x"
        self.assertEqual(client.url_for(other), other)

    def test__session__reused_within_a_thread(self):
        client = HttpClient(base_url=URL)

        self.assertIsInstance(client.session, requests.Session)
        self.assertIs(client.session, client.session)

    def test__session__one_per_thread(self):
        client = HttpClient(base_url=URL)
        with ThreadPoolExecutor(max_workers=1) as executor:
            worker_session = executor.submit(lambda: client.session).result()

        self.assertIsNot(worker_session, client.session)

    def test__session__not_shared_between_clients(self):
        self.assertIsNot(HttpClient(base_url=URL).session, HttpClient(base_url=URL).session)

    def test__request__uses_calling_thread_session(self):
        http = FakeHttp()
        self.create_patch("requests.Session.request", autospec=True, side_effect=http)
        http.add("GET", "/v1/items", {"items": []})
        client = HttpClient(base_url=URL, timeout=5)

        client.request("GET", "/v1/items", headers={"X-Trace": "1"})
        with ThreadPoolExecutor(max_workers=1) as executor:
            executor.submit(client.request, "GET", "/v1/items").result()

        main_call, worker_call = http.calls
        self.assertIs(main_call.session, client.session)
        self.assertIsNot(worker_call.session, client.session)
        self.assertEqual(main_call.headers, {"X-Trace": "1"})
