# Resource kinds KubeFS knows how to reach, and the API group prefix each one lives under.
KNOWN_KINDS = {
	'deployments': 'apis/apps/v1',
	'services': 'api/v1',
	'pods': 'api/v1',
	'statefulsets': 'apis/apps/v1',
	'configmaps': 'api/v1',
	'secrets': 'api/v1',
	'serviceaccounts': 'api/v1',
	'daemonsets': 'apis/apps/v1',
	'replicasets': 'apis/apps/v1',
	'jobs': 'apis/batch/v1',
	'cronjobs': 'apis/batch/v1',
	'ingresses': 'apis/networking.k8s.io/v1',
	'persistentvolumeclaims': 'api/v1',
	'endpoints': 'api/v1',
}

# What every namespace directory shows, unless configured otherwise.
DEFAULT_KINDS = {
	name: KNOWN_KINDS[name] for name in [
		'deployments',
		'services',
		'pods',
		'statefulsets',
		'configmaps',
		'secrets',
		'serviceaccounts',
	]
}


# Parse a comma separated kind list, e.g. "pods,services,widgets=apis/example.com/v1".
# A bare name must be one of KNOWN_KINDS; name=prefix adds anything else.
# RETURNS an ordered {kind: prefix} dict.
def parse_kinds(kinds_str):
	if (isinstance(kinds_str, dict)):
		return dict(kinds_str)

	ret = {}
	for entry in kinds_str.split(','):
		entry = entry.strip()
		if (not entry):
			continue

		if ('=' in entry):
			name, prefix = [part.strip() for part in entry.split('=', 1)]
			if (not name or not prefix):
				raise ValueError(f"invalid kind specifier {entry!r}")
			ret[name] = prefix.strip('/')
		elif (entry in KNOWN_KINDS):
			ret[entry] = KNOWN_KINDS[entry]
		else:
			raise ValueError(f"unknown kind {entry!r}; use {entry}=<api prefix>")

	if (not ret):
		raise ValueError("no kinds given")
	return ret
