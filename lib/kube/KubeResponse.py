"""
lib/kube/KubeResponse.py

Purpose:
Wraps the HTTP response from a Kubernetes API call.

Place in Architecture:
A thin wrapper around the urllib response stream, so every KubeConnection request is read and closed the same way and releases its connection slot exactly once.

Interface:

	__init__(connection, req, is_put, timeout): Sends the request.
	read(size=None): Reads data from the response.
	close(): Closes the response and notifies the connection.

TODOs/FIXMEs:
None.
"""

from urllib.request import urlopen


class KubeResponse(object):
	def __init__(this, connection, req, is_put, timeout):
		this.connection = connection

		# Unlike bulk uploads, Kubernetes documents are small, so PUT uses the same timeout as everything else.
		this.response = urlopen(req, timeout=timeout)
		this.is_put = is_put

	def read(this, size=None):
		return this.response.read(size)

	def close(this):
		this.response.close()
		this.connection._release_response(this, this.is_put)

	def __enter__(this):
		return this

	def __exit__(this, *exc):
		this.close()
