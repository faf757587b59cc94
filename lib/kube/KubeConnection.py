"""
lib/kube/KubeConnection.py

Purpose:
Provides the remote resource client: a minimal Kubernetes REST API binding that lists, reads and replaces objects and creates and deletes namespaces.

Place in Architecture:
The only component that talks to the cluster. The filesystem core receives an instance and uses nothing but the six public methods below, so tests can swap in any object with the same methods.
It expects an endpoint that needs no authentication, such as `kubectl proxy` (http://127.0.0.1:8001 by default).

Interface:

	__init__(base_url, timeout, kinds=None, max_connections=10): Initializes the connection parameters and semaphores for concurrency.
	Internal methods: _get_response(), _release_response(), _url(), _get_request(), _call(), _translate_http_error().
	Public methods:
		list_namespaces(), list_objects(namespace, kind), get_object_document(name, namespace, kind),
		replace_object_document(name, namespace, kind, document), create_namespace(name), delete_namespace(name).

TODOs/FIXMEs:
None.
"""

from urllib.request import Request
from urllib.parse import quote
from urllib.error import HTTPError, URLError
from http.client import HTTPException
import json
import logging
import threading

from ..Errors import KubeFSError, NotFound, Unavailable, Invalid, AlreadyExists, PermissionDenied
from .Kinds import DEFAULT_KINDS
from .KubeResponse import KubeResponse


class KubeConnection(object):
	def __init__(this, base_url, timeout, kinds=None, max_connections=10):
		assert isinstance(base_url, str)

		this.base_url = base_url.rstrip('/')
		this.kinds = dict(kinds if kinds is not None else DEFAULT_KINDS)

		this.connections = []
		this.lock = threading.Lock()

		put_conns = max(1, max_connections//2)
		get_conns = max(1, max_connections - put_conns)

		this.get_semaphore = threading.Semaphore(get_conns)
		this.put_semaphore = threading.Semaphore(put_conns)
		this.timeout = timeout

	def _get_response(this, req, is_put):
		semaphore = this.put_semaphore if is_put else this.get_semaphore

		semaphore.acquire()
		try:
			response = KubeResponse(this, req, is_put, this.timeout)
			with this.lock:
				this.connections.append(response)
				return response
		except BaseException:
			semaphore.release()
			raise

	def _release_response(this, response, is_put):
		semaphore = this.put_semaphore if is_put else this.get_semaphore

		with this.lock:
			if response in this.connections:
				semaphore.release()
				this.connections.remove(response)

	def _url(this, *segments):
		return this.base_url + '/' + '/'.join(quote(segment.strip('/'), safe='/') for segment in segments)

	def _get_request(this, method, url, data=None):
		headers = {'Accept': 'application/json'}
		if data is not None:
			headers['Content-Type'] = 'application/json'

		req = Request(url, data=data, headers=headers)
		req.get_method = lambda: method
		return req

	def _kind_prefix(this, kind):
		try:
			return this.kinds[kind]
		except KeyError:
			raise NotFound(f"Unsupported kind {kind}")

	# Perform one request and decode the JSON reply.
	# Every failure comes out as a KubeFSError.
	# RETURNS the decoded body, or None if the body was empty.
	def _call(this, method, url, body=None):
		what = f"{method} {url}"
		req = this._get_request(method, url, data=body)

		try:
			response = this._get_response(req, method == "PUT")
			try:
				data = response.read()
			finally:
				response.close()
		except HTTPError as err:
			raise this._translate_http_error(err, what) from err
		except KubeFSError:
			raise
		except (URLError, OSError, HTTPException) as err:
			# socket.timeout is an OSError. A connection dropped mid-body is an HTTPException (IncompleteRead).
			logging.info(f"{what} failed: {err}")
			raise Unavailable(f"{what} failed: {err}") from err

		logging.debug(f"{what}: {len(data)} bytes")

		if (not data):
			return None
		try:
			return json.loads(data.decode('utf-8'))
		except ValueError as err:
			raise Unavailable(f"{what} returned a malformed response") from err

	def _translate_http_error(this, err, what):
		message = err.reason
		try:
			# The API server explains itself in a Status object.
			status = json.loads(err.read().decode('utf-8'))
			message = status.get('message', message)
		except (ValueError, AttributeError, OSError):
			pass
		finally:
			err.close()

		message = f"{what}: {err.code} {message}"
		logging.info(message)

		if (err.code == 404):
			return NotFound(message)
		if (err.code in (401, 403)):
			return PermissionDenied(message)
		if (err.code == 409):
			return AlreadyExists(message)
		if (err.code in (400, 422)):
			return Invalid(message)
		return Unavailable(message)

	def _names(this, listing):
		if (not isinstance(listing, dict)):
			raise Unavailable("Malformed listing")
		try:
			return [item['metadata']['name'] for item in listing.get('items') or []]
		except (KeyError, TypeError) as err:
			raise Unavailable(f"Malformed listing: missing {err}") from err

	def list_namespaces(this):
		return this._names(this._call("GET", this._url('api/v1', 'namespaces')))

	def list_objects(this, namespace, kind):
		prefix = this._kind_prefix(kind)
		return this._names(this._call("GET", this._url(prefix, 'namespaces', namespace, kind)))

	# RETURNS the object as an indented JSON document.
	def get_object_document(this, name, namespace, kind):
		prefix = this._kind_prefix(kind)
		obj = this._call("GET", this._url(prefix, 'namespaces', namespace, kind, name))
		return json.dumps(obj, indent=2) + "\n"

	def replace_object_document(this, name, namespace, kind, document):
		try:
			obj = json.loads(document)
		except ValueError as err:
			raise Invalid(f"{namespace}/{kind}/{name} is not valid JSON: {err}")
		if (not isinstance(obj, dict)):
			raise Invalid(f"{namespace}/{kind}/{name} must be a JSON object")

		prefix = this._kind_prefix(kind)
		body = json.dumps(obj).encode('utf-8')
		this._call("PUT", this._url(prefix, 'namespaces', namespace, kind, name), body=body)

	def create_namespace(this, name):
		body = json.dumps({
			'apiVersion': 'v1',
			'kind': 'Namespace',
			'metadata': {'name': name},
		}).encode('utf-8')
		this._call("POST", this._url('api/v1', 'namespaces'), body=body)

	def delete_namespace(this, name):
		this._call("DELETE", this._url('api/v1', 'namespaces', name))
