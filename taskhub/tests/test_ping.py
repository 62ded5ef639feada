import json

from django.test import Client, TestCase
from django.urls import reverse
from rest_framework import status


class PingEndpointTest(TestCase):
    def setUp(self):
        """Set up test client."""
        self.client = Client()
        self.ping_url = '/ping/'

    def test_ping_endpoint_returns_bang(self):
        """Test that ping endpoint returns 'Bang' message."""
        response = self.client.get(self.ping_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/json')
        self.assertEqual(json.loads(response.content), {'message': 'Bang'})

    def test_ping_endpoint_with_reverse_url(self):
        response = self.client.get(reverse('ping'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_ping_endpoint_only_allows_get(self):
        for method in [self.client.post, self.client.put, self.client.delete]:
            response = method(self.ping_url)
            self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_ping_endpoint_ignores_bad_credentials(self):
        """Test that ping endpoint doesn't look at the Authorization header."""
        response = self.client.get(self.ping_url, HTTP_AUTHORIZATION='Bearer not-a-token')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
