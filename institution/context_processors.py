from .session import InstitutionSession


def institution(request):
    return {'institution': InstitutionSession.from_request(request)}
