"""GraphQL documents sent to the GitHub API."""

from __future__ import annotations

REVIEW_THREADS_QUERY = """
query ReviewThreads(
  $owner: String!
  $repo: String!
  $pullRequestNumber: Int!
  $first: Int!
  $after: String
) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $pullRequestNumber) {
      reviewThreads(first: $first, after: $after) {
        pageInfo {
          hasNextPage
          endCursor
        }
        nodes {
          id
          isResolved
          comments(first: 1) {
            nodes {
              body
              author {
                login
              }
            }
          }
        }
      }
    }
  }
}
"""

RESOLVE_THREAD_MUTATION = """
mutation ResolveThread($threadId: ID!) {
  resolveReviewThread(input: {threadId: $threadId}) {
    thread {
      id
      isResolved
    }
  }
}
"""

ADD_THREAD_REPLY_MUTATION = """
mutation AddThreadReply($threadId: ID!, $body: String!) {
  addPullRequestReviewThreadReply(
    input: {pullRequestReviewThreadId: $threadId, body: $body}
  ) {
    comment {
      url
    }
  }
}
"""

VIEWER_LOGIN_QUERY = """
query ViewerLogin {
  viewer {
    login
  }
}
"""
