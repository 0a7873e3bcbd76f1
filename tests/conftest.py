"""
Shared kustomize-rendered samples for project 'myproj'.
"""

import pytest

from kubecharter.core.models import ResourceDescriptor
from kubecharter.templating.pipeline import HelmTemplater

PROJECT = "myproj"

DEPLOYMENT = """apiVersion: apps/v1
kind: Deployment
metadata:
  labels:
    app.kubernetes.io/managed-by: kustomize
    app.kubernetes.io/name: myproj
    control-plane: controller-manager
  name: myproj-controller-manager
  namespace: myproj-system
spec:
  replicas: 1
  selector:
    matchLabels:
      control-plane: controller-manager
  template:
    metadata:
      annotations:
        kubectl.kubernetes.io/default-container: manager
      labels:
        control-plane: controller-manager
    spec:
      containers:
      - args:
        - --metrics-bind-address=:8443
        - --leader-elect
        - --health-probe-bind-address=:8081
        - --webhook-cert-path=/tmp/k8s-webhook-server/serving-certs
        - --metrics-cert-path=/tmp/k8s-metrics-server/metrics-certs
        command:
        - /manager
        image: myproj/ctrl:v1
        imagePullPolicy: IfNotPresent
        livenessProbe:
          httpGet:
            path: /healthz
            port: 8081
          initialDelaySeconds: 15
          periodSeconds: 20
        name: manager
        ports:
        - containerPort: 9443
          name: webhook-server
          protocol: TCP
        resources:
          limits:
            cpu: 500m
            memory: 128Mi
          requests:
            cpu: 10m
            memory: 64Mi
        securityContext:
          allowPrivilegeEscalation: false
          capabilities:
            drop:
            - ALL
        volumeMounts:
        - mountPath: /tmp/k8s-metrics-server/metrics-certs
          name: metrics-certs
          readOnly: true
        - mountPath: /tmp/k8s-webhook-server/serving-certs
          name: webhook-certs
          readOnly: true
      securityContext:
        runAsNonRoot: true
        seccompProfile:
          type: RuntimeDefault
      serviceAccountName: myproj-controller-manager
      terminationGracePeriodSeconds: 10
      volumes:
      - name: metrics-certs
        secret:
          items:
          - key: ca.crt
            path: ca.crt
          - key: tls.crt
            path: tls.crt
          optional: false
          secretName: metrics-server-cert
      - name: webhook-certs
        secret:
          secretName: webhook-server-cert
"""

METRICS_CERTIFICATE = """apiVersion: cert-manager.io/v1
kind: Certificate
metadata:
  labels:
    app.kubernetes.io/managed-by: kustomize
    app.kubernetes.io/name: myproj
  name: myproj-metrics-certs
  namespace: myproj-system
spec:
  dnsNames:
  - SERVICE_NAME.SERVICE_NAMESPACE.svc
  - SERVICE_NAME.SERVICE_NAMESPACE.svc.cluster.local
  issuerRef:
    kind: Issuer
    name: myproj-selfsigned-issuer
  secretName: metrics-server-cert
"""

SERVING_CERTIFICATE = """apiVersion: cert-manager.io/v1
kind: Certificate
metadata:
  name: myproj-serving-cert
  namespace: myproj-system
spec:
  dnsNames:
  - myproj-webhook-service.myproj-system.svc
  issuerRef:
    kind: Issuer
    name: myproj-selfsigned-issuer
  secretName: webhook-server-cert
"""

SERVICE_MONITOR = """apiVersion: monitoring.coreos.com/v1
kind: ServiceMonitor
metadata:
  labels:
    app.kubernetes.io/managed-by: kustomize
    control-plane: controller-manager
  name: myproj-controller-manager-metrics-monitor
  namespace: myproj-system
spec:
  endpoints:
  - path: /metrics
    port: https
  selector:
    matchLabels:
      control-plane: controller-manager
"""

METRICS_SERVICE = """apiVersion: v1
kind: Service
metadata:
  labels:
    app.kubernetes.io/managed-by: kustomize
    control-plane: controller-manager
  name: myproj-controller-manager-metrics-service
  namespace: myproj-system
spec:
  ports:
  - name: https
    port: 8443
    protocol: TCP
    targetPort: 8443
  selector:
    control-plane: controller-manager
"""

WEBHOOK_CONFIGURATION = """apiVersion: admissionregistration.k8s.io/v1
kind: ValidatingWebhookConfiguration
metadata:
  annotations:
    cert-manager.io/inject-ca-from: myproj-system/myproj-serving-cert
  name: myproj-validating-webhook-configuration
webhooks:
- admissionReviewVersions:
  - v1
  clientConfig:
    service:
      name: myproj-webhook-service
      namespace: myproj-system
      path: /validate-example-com-v1-widget
  name: vwidget-v1.kb.io
"""

CRD = """apiVersion: apiextensions.k8s.io/v1
kind: CustomResourceDefinition
metadata:
  name: widgets.example.com
spec:
  group: example.com
  names:
    kind: Widget
    plural: widgets
  scope: Namespaced
"""

NAMESPACE = """apiVersion: v1
kind: Namespace
metadata:
  labels:
    control-plane: controller-manager
  name: myproj-system
"""

ROLE = """apiVersion: rbac.authorization.k8s.io/v1
kind: ClusterRole
metadata:
  name: myproj-widget-editor-role
rules:
- apiGroups:
  - example.com
  resources:
  - widgets
  verbs:
  - get
"""

SAMPLES = {
    "deployment": (DEPLOYMENT, ResourceDescriptor("Deployment", "apps/v1", "myproj-controller-manager", "myproj-system")),
    "metrics-certificate": (METRICS_CERTIFICATE, ResourceDescriptor("Certificate", "cert-manager.io/v1", "myproj-metrics-certs", "myproj-system")),
    "serving-certificate": (SERVING_CERTIFICATE, ResourceDescriptor("Certificate", "cert-manager.io/v1", "myproj-serving-cert", "myproj-system")),
    "service-monitor": (SERVICE_MONITOR, ResourceDescriptor("ServiceMonitor", "monitoring.coreos.com/v1", "myproj-controller-manager-metrics-monitor", "myproj-system")),
    "metrics-service": (METRICS_SERVICE, ResourceDescriptor("Service", "v1", "myproj-controller-manager-metrics-service", "myproj-system")),
    "webhook-configuration": (WEBHOOK_CONFIGURATION, ResourceDescriptor("ValidatingWebhookConfiguration", "admissionregistration.k8s.io/v1", "myproj-validating-webhook-configuration")),
    "crd": (CRD, ResourceDescriptor("CustomResourceDefinition", "apiextensions.k8s.io/v1", "widgets.example.com")),
    "namespace": (NAMESPACE, ResourceDescriptor("Namespace", "v1", "myproj-system")),
    "editor-role": (ROLE, ResourceDescriptor("ClusterRole", "rbac.authorization.k8s.io/v1", "myproj-widget-editor-role")),
}


@pytest.fixture
def templater():
    return HelmTemplater(PROJECT)
