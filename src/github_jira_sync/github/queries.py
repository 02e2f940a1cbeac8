"""GraphQL queries used by the task fetchers.

Every query takes ``$owner``, ``$repo``, ``$per_page`` and ``$cursor`` and
returns a connection whose ``edges`` carry a ``cursor``.
"""

PULL_REQUESTS_QUERY = """
query ($owner: String!, $repo: String!, $per_page: Int!, $cursor: String) {
  repository(owner: $owner, name: $repo) {
    pullRequests(
      first: $per_page
      after: $cursor
      orderBy: {field: CREATED_AT, direction: DESC}
    ) {
      edges {
        cursor
        node {
          number
          title
          body
          state
          url
          updatedAt
          headRefName
          baseRefName
          comments {
            totalCount
          }
          author {
            login
            avatarUrl
            url
          }
        }
      }
    }
  }
}
"""

BRANCHES_QUERY = """
query ($owner: String!, $repo: String!, $per_page: Int!, $cursor: String) {
  repository(owner: $owner, name: $repo) {
    refs(
      first: $per_page
      after: $cursor
      refPrefix: "refs/heads/"
      orderBy: {field: ALPHABETICAL, direction: ASC}
    ) {
      edges {
        cursor
        node {
          name
          target {
            ... on Commit {
              oid
              message
              url
              authoredDate
              changedFilesIfAvailable
              author {
                name
                email
                avatarUrl
              }
            }
          }
        }
      }
    }
  }
}
"""

COMMITS_QUERY = """
query ($owner: String!, $repo: String!, $per_page: Int!, $cursor: String) {
  repository(owner: $owner, name: $repo) {
    defaultBranchRef {
      target {
        ... on Commit {
          history(first: $per_page, after: $cursor) {
            edges {
              cursor
              node {
                oid
                message
                url
                authoredDate
                changedFilesIfAvailable
                author {
                  name
                  email
                  avatarUrl
                }
              }
            }
          }
        }
      }
    }
  }
}
"""
