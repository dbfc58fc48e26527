# cpisync

`cpisync` holds the repository-side bookkeeping for keeping a Git repository
in step with a Cloud Integration package. It works on the files of the
repository only:

- `cpisync.config` reads `.iflowkit/package.json` (`load_package_metadata`,
  `SyncMetadata`), finds the repository root by walking up to the folder that
  holds `.iflowkit` (`find_sync_repo_root`), maps branches to tenants
  (`resolve_target_tenant`: `dev`, `qas` when `cpiTenantLevels` is 3, `prd`
  when it is 2 or 3, and `feature/*` / `bugfix/*` to `dev`) and enforces that
  PRD work needs `--to prd` (`validate_to_flag`).
- `cpisync.artifacts` works out which artifacts (`iFlows`, `ValueMappings`,
  `MessageMappings`, `Scripts`, `CustomTags`) a list of changed paths touches
  (`detect_changed_artifacts`), lists the artifact folders present
  (`list_local_artifact_keys`) and splits changed artifacts into uploads and
  deletions (`partition_changed_keys`).
- `cpisync.ignore` applies ignore patterns from `.iflowkit/ignore` with `*`,
  `?` and `**` globs, on top of built-in defaults for volatile export files
  (`RepoIgnore.load`, `RepoIgnore.is_ignored`, `RepoIgnore.filter`), and can
  write the default ignore file (`ensure_repo_ignore_file`).
- `cpisync.compare` compares two folder trees by SHA-256 of each file and
  returns the differing repo-relative paths (`compare_folder_trees`).
- `cpisync.transports` keeps transport records under
  `.iflowkit/transports/<tenant>/` with an `index.json` beside them
  (`TransportStore.persist`, `load_record`, `load_latest`,
  `load_latest_pending`), creates transport ids (`new_transport_ids`) and
  writes the completed init record that lists every exported object
  (`write_init_transport`).
- `cpisync.conventions` builds transport tag names (`transport_tag_name`) and
  commit messages (`build_transport_commit_message`).
- `cpisync.repo_init` checks package ids (`validate_package_id`), makes sure a
  target folder is empty (`ensure_empty_dir`) and writes `.gitignore`
  (`ensure_sync_repo_gitignore`).

Errors are raised as `cpisync.keys.SyncError`.

## Installing

```
pip install .
```

Python 3.10 or later is needed; there are no other dependencies.

## The command

```
cpisync
```

prints the overview of the sync commands, and

```
cpisync help push
```

prints the help of one command (`init`, `pull`, `push`, `deliver`,
`compare`, `deploy`). `cpisync push --help` does the same.

## Using it from Python

```python
from cpisync.artifacts import detect_changed_artifacts, partition_changed_keys
from cpisync.config import find_sync_repo_root, load_package_metadata, resolve_target_tenant
from cpisync.ignore import RepoIgnore
from cpisync.keys import sorted_keys
from cpisync.transports import TransportRecord, TransportStore, new_transport_ids

root = find_sync_repo_root(".")
meta = load_package_metadata(root)
tenant, is_env_branch = resolve_target_tenant(meta, "feature/new-mapping")  # ("dev", False)

ignore = RepoIgnore.load(root)
changed = ignore.filter(["IntegrationPackage/iFlows/OrderFlow/src/main/resources/script.groovy"])
keys = detect_changed_artifacts(meta, changed)
to_upload, to_delete = partition_changed_keys(root, meta, keys)

transport_id, created_at = new_transport_ids()
store = TransportStore(root, tenant)
store.persist(TransportRecord(
    transport_id=transport_id,
    transport_type="push",
    package_id=meta.package_id,
    branch="feature/new-mapping",
    created_at=created_at,
    upload_remaining=sorted_keys(to_upload),
    delete_remaining=sorted_keys(to_delete),
))

pending = store.load_latest_pending(meta.package_id, "feature/new-mapping", "push")
if pending is not None:
    record, path = pending
```

## What it does not do

The package runs no Git commands and does not talk to a tenant. It does not
create remote repositories, commit, push, merge or tag, and it does not
upload, delete or deploy artifacts. The `cpisync` command only prints help:
naming a command such as `cpisync push` prints that command's help and exits
with status 2.

## Running the tests

```
pip install .[test]
pytest
```