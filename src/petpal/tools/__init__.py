from .breed_issues import BreedIssues, get_breed_specific_issues

__all__ = ["BreedIssues", "get_breed_specific_issues"]
