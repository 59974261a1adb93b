"""Mirror a news feed into a GraphQL link store on demand."""

__version__ = "1.0.0"
